from sqlalchemy.orm import Session
from models.user_role import UserRole, APP_ROLES
from utils.logger_factory import new_logger


def has_role(db: Session, user_id: str, role: str) -> bool:
    """True when the auth user has been granted the given app role."""
    if role not in APP_ROLES:
        raise ValueError(f"Unknown role: {role}")
    return db.query(UserRole).filter(
        UserRole.user_id == user_id,
        UserRole.role == role
    ).first() is not None


def grant_role(db: Session, user_id: str, role: str) -> UserRole:
    log = new_logger("grant_role")
    if role not in APP_ROLES:
        raise ValueError(f"Unknown role: {role}")

    existing = db.query(UserRole).filter(
        UserRole.user_id == user_id,
        UserRole.role == role
    ).first()
    if existing:
        return existing

    try:
        user_role = UserRole(user_id=user_id, role=role)
        db.add(user_role)
        db.commit()
        db.refresh(user_role)
    except Exception as e:
        db.rollback()
        log.error(f"Failed to grant role {role} to {user_id}: {str(e)}")
        raise
    log.info(f"Granted role {role} to {user_id}")
    return user_role
