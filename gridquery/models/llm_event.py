from sqlalchemy import Boolean, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column
from gridquery.db.session import Base
from gridquery.models.common import UUIDMixin, CreatedAtMixin

LLM_PROVIDERS = ("openai", "anthropic", "deepseek", "cohere", "google", "custom")
LLM_EVENT_STATUSES = ("success", "error")

class LlmEvent(Base, UUIDMixin, CreatedAtMixin):
    __tablename__ = "llm_events"
    provider: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    model: Mapped[str] = mapped_column(String(120), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="success")
    latency_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cost_usd: Mapped[float] = mapped_column(Numeric(12, 6), nullable=False, default=0)
    is_streaming: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
