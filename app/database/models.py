from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    LargeBinary,
    String,
    Table,
    Text,
    TypeDecorator,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column


class AwareDateTime(TypeDecorator):
    """DateTime that auto-converts naive values to UTC-aware on load from DB."""

    impl = DateTime
    cache_ok = True

    def __init__(self):
        super().__init__(timezone=True)

    def process_result_value(self, value, dialect):
        if value is not None and isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


Base = declarative_base()


# M2M: какие ресурсы (каналы/группы) открывает тариф
tariffs_resources = Table(
    'tariffs_resources',
    Base.metadata,
    Column(
        'tariff_id',
        BigInteger,
        ForeignKey('tariffs.id', ondelete='CASCADE'),
        primary_key=True,
    ),
    Column(
        'resource_id',
        BigInteger,
        ForeignKey('resources.id', ondelete='CASCADE'),
        primary_key=True,
    ),
)


# M2M: на какие тарифы действует промокод
promocodes_tariffs = Table(
    'promocodes_tariffs',
    Base.metadata,
    Column(
        'promocode_id',
        BigInteger,
        ForeignKey('promocodes.id', ondelete='CASCADE'),
        primary_key=True,
    ),
    Column(
        'tariff_id',
        BigInteger,
        ForeignKey('tariffs.id', ondelete='CASCADE'),
        primary_key=True,
    ),
)


class PaymentStatus(str, Enum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    REJECTED = 'rejected'


class SubscriptionStatus(str, Enum):
    ACTIVE = 'active'
    EXPIRED = 'expired'
    CANCELLED = 'cancelled'


class User(Base):
    __tablename__ = 'users'

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    tg_id: Mapped[int] = mapped_column(BigInteger, unique=True, nullable=False)
    username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    first_time: Mapped[datetime] = mapped_column(AwareDateTime(), nullable=False)
    total_sub: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    contains_sub: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    promocode_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey('promocodes.id', ondelete='SET NULL'),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f'<User id={self.id} tg_id={self.tg_id} username={self.username!r}>'


class Payment(Base):
    __tablename__ = 'payments'

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    # Не больше одного платежа на пользователя: upsert по user_tg_id
    user_tg_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey('users.tg_id', ondelete='CASCADE'),
        unique=True,
        nullable=False,
    )
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(AwareDateTime(), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=PaymentStatus.PENDING.value)
    receipt_photo: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True)

    def __repr__(self) -> str:
        return f'<Payment id={self.id} user_tg_id={self.user_tg_id} amount={self.amount} status={self.status}>'


class Subscription(Base):
    __tablename__ = 'subscriptions'

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_tg_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey('users.tg_id', ondelete='CASCADE'),
        unique=True,
        nullable=False,
    )
    tariff_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey('tariffs.id', ondelete='CASCADE'),
        nullable=False,
    )
    start_date: Mapped[datetime] = mapped_column(AwareDateTime(), nullable=False)
    end_date: Mapped[datetime] = mapped_column(AwareDateTime(), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=SubscriptionStatus.ACTIVE.value)

    def __repr__(self) -> str:
        return (
            f'<Subscription id={self.id} user_tg_id={self.user_tg_id} '
            f'tariff_id={self.tariff_id} status={self.status}>'
        )


class Tariff(Base):
    __tablename__ = 'tariffs'

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False)

    def __repr__(self) -> str:
        return f'<Tariff id={self.id} name={self.name!r} price={self.price}>'


class Resource(Base):
    __tablename__ = 'resources'

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    chat_id: Mapped[int] = mapped_column(BigInteger, unique=True, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default='')

    def __repr__(self) -> str:
        return f'<Resource id={self.id} chat_id={self.chat_id}>'


class Promocode(Base):
    __tablename__ = 'promocodes'
    __table_args__ = (
        CheckConstraint('discount >= 0 AND discount <= 100', name='ck_promocodes_discount_range'),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    discount: Mapped[int] = mapped_column(Integer, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(AwareDateTime(), nullable=False)
    used_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f'<Promocode id={self.id} code={self.code!r} discount={self.discount}>'


class Requisite(Base):
    __tablename__ = 'requisites'

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    link: Mapped[str] = mapped_column(String(512), unique=True, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    photo: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True)

    def __repr__(self) -> str:
        return f'<Requisite id={self.id} name={self.name!r} link={self.link!r}>'
