from .db import db
from .user import User, Role, user_roles
from .audit_log import AuditLog
from .session import OperatorSession
from .rate_limit_counter import RateLimitCounter
from .blocked_ip import BlockedIP
from .live_chat_setting import LiveChatSetting, PRESENCE_SETTING_ID
from .chat_conversation import ChatConversation
from .chat_message import ChatMessage
