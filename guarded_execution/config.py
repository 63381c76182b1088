from decimal import Decimal
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from guarded_execution.execution_audit_logger import GuardAuditLogger
from guarded_execution.execution_models import (
    DEFAULT_AUTHORIZED_COUNTERPARTIES,
    LimitRegistry,
    TestModeProfile,
)
from guarded_execution.guarded_core import GuardedExecutionCore

load_dotenv()


class GuardSettings(BaseSettings):
    MAX_SLIPPAGE_BPS: int = Field(50, ge=0, le=10000)
    MAX_GAS_PRICE_GWEI: int = Field(1000, gt=0)
    MAX_TRADE_SIZE_USD: Decimal = Field(Decimal("10000"), gt=0)
    TEST_MODE_ENABLED: bool = Field(True)
    MAX_TEST_TRADES: int = Field(5, ge=0)
    MAX_TEST_AMOUNT_USD: Decimal = Field(Decimal("500"), gt=0)
    MAX_CONSECUTIVE_FAILURES: int = Field(3, gt=0)
    # Comma-separated; empty keeps the built-in allow-list
    AUTHORIZED_COUNTERPARTIES: str = Field("")
    GUARD_AUDIT_LOG_FILE: Optional[str] = Field(None)
    LOG_DIR: Optional[str] = Field(None)
    LOG_LEVEL: str = Field("INFO")

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @property
    def counterparties(self) -> List[str]:
        if not self.AUTHORIZED_COUNTERPARTIES.strip():
            return sorted(DEFAULT_AUTHORIZED_COUNTERPARTIES)
        return [a.strip() for a in self.AUTHORIZED_COUNTERPARTIES.split(",") if a.strip()]


@lru_cache(maxsize=1)
def get_settings() -> GuardSettings:
    return GuardSettings()


def build_limit_registry(settings: GuardSettings) -> LimitRegistry:
    return LimitRegistry(
        max_slippage_bps=settings.MAX_SLIPPAGE_BPS,
        max_gas_price_units=settings.MAX_GAS_PRICE_GWEI,
        production_trade_ceiling=settings.MAX_TRADE_SIZE_USD,
        authorized_counterparties=set(settings.counterparties),
        test_mode=TestModeProfile(
            enabled=settings.TEST_MODE_ENABLED,
            trade_ceiling=settings.MAX_TEST_AMOUNT_USD,
            max_trades=settings.MAX_TEST_TRADES,
        ),
    )


def build_core(settings: Optional[GuardSettings] = None) -> GuardedExecutionCore:
    """Process-start factory: one core, injected into every collaborator."""
    settings = settings or get_settings()
    return GuardedExecutionCore(
        limits=build_limit_registry(settings),
        failure_threshold=settings.MAX_CONSECUTIVE_FAILURES,
        audit_logger=GuardAuditLogger(settings.GUARD_AUDIT_LOG_FILE),
    )
