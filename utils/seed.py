from models import db
from models.user import Role
from models.live_chat_setting import LiveChatSetting, PRESENCE_SETTING_ID

DEFAULT_ROLES = ["OPERATOR", "ADMIN"]

def seed_roles():
    existing = {r.name for r in Role.query.all()}
    for name in DEFAULT_ROLES:
        if name not in existing:
            db.session.add(Role(name=name))
    db.session.commit()

def seed_presence_setting():
    """Create the presence singleton (offline) if it does not exist yet."""
    if db.session.get(LiveChatSetting, PRESENCE_SETTING_ID) is None:
        db.session.add(LiveChatSetting(id=PRESENCE_SETTING_ID, is_online=False))
        db.session.commit()
