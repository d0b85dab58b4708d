"""Single-row table holding the municipal rate table."""

from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, JSONType, TimestampMixin

SYSTEM_CONFIG_ID = 1


class SystemConfig(Base, TimestampMixin):
    """Rate table stored as camelCase JSON under a fixed id."""

    __tablename__ = "system_config"

    id: Mapped[int] = mapped_column(primary_key=True)
    config: Mapped[dict] = mapped_column(JSONType, nullable=False)
