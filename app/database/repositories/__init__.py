"""
Репозитории для работы с БД через Unit of Work.

Репозитории НЕ делают commit - это ответственность UnitOfWork.
"""
from app.database.repositories.association import AssociationRepository
from app.database.repositories.base import BaseRepository, SessionRepository
from app.database.repositories.payment import PaymentRepository
from app.database.repositories.promocode import PromocodeRepository
from app.database.repositories.promocode_tariff import PromocodeTariffRepository
from app.database.repositories.requisite import RequisiteRepository
from app.database.repositories.resource import ResourceRepository
from app.database.repositories.subscription import SubscriptionRepository
from app.database.repositories.tariff import TariffRepository
from app.database.repositories.tariff_resource import TariffResourceRepository
from app.database.repositories.user import UserRepository

__all__ = [
    'SessionRepository',
    'BaseRepository',
    'AssociationRepository',
    'UserRepository',
    'PaymentRepository',
    'SubscriptionRepository',
    'TariffRepository',
    'ResourceRepository',
    'PromocodeRepository',
    'RequisiteRepository',
    'TariffResourceRepository',
    'PromocodeTariffRepository',
]
