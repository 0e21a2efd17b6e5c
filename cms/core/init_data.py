import logging
from sqlmodel import Session, select

from cms.core.config import settings
from cms.core.db import engine
from cms.core.security import hash_password
from cms.models.admin import Admin

logger = logging.getLogger(__name__)


def init_admin():
    with Session(engine) as session:
        exists = session.exec(
            select(Admin).where(Admin.username == settings.DEFAULT_ADMIN_USERNAME)).first()
        if exists:
            return
        session.add(Admin(
            username=settings.DEFAULT_ADMIN_USERNAME,
            password=hash_password(settings.DEFAULT_ADMIN_PASSWORD)
        ))
        session.commit()
        logger.info("Administrador padrão '%s' criado", settings.DEFAULT_ADMIN_USERNAME)


def init_data():
    init_admin()
