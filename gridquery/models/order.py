from sqlalchemy import Boolean, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from gridquery.db.session import Base
from gridquery.models.common import UUIDMixin, CreatedAtMixin

ORDER_CHANNELS = ("tiendanube", "mercadolibre")
ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")
ORDER_TAGS = ("express", "gift", "fragile", "wholesale")

class Order(Base, UUIDMixin, CreatedAtMixin):
    __tablename__ = "orders"
    external_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    channel: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True, default="pending")
    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    customer_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    total_amount: Mapped[float] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # multiOption, stored delimited: "|gift|express|"
    tags: Mapped[str | None] = mapped_column(Text, nullable=True)
