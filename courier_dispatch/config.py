"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - Every setting can be overridden by a DISPATCH_-prefixed environment variable
    - get_settings() is cached (lru_cache) — single instance per process
    - Simulation tuning is validated here AND by SimulationTuning (core)

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for everything: in-memory store, no network needed to start
    - Domain config (clock, speeds, ranges) is NOT here — it lives in ConfigStore
      and changes at runtime; Settings only covers process wiring
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from courier_dispatch.core.simulation_rules import SimulationTuning


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="DISPATCH_", case_sensitive=False,
    )

    # Storage
    store_backend: Literal["memory", "sql"] = "memory"
    database_url: str = "sqlite:///./courier_dispatch.db"

    # Geocoding / routing
    geocoding_base_url: str = "https://nominatim.openstreetmap.org"
    routing_base_url: str = "https://router.project-osrm.org"
    geocoding_timeout_seconds: float = Field(10.0, gt=0)
    geocoding_cache_size: int = Field(1024, ge=1)

    # Simulator
    simulator_tick_seconds: float = Field(1.0, gt=0)
    simulation_seed: int | None = None
    sim_failure_rate_per_minute: float = Field(0.40, ge=0, le=1)
    sim_assign_probability: float = Field(0.5, ge=0, le=1)
    sim_deliver_probability: float = Field(0.90, ge=0, le=1)
    sim_refuse_probability: float = Field(0.05, ge=0, le=1)
    sim_cancel_probability: float = Field(0.05, ge=0, le=1)
    sim_manager_cancel_probability: float = Field(0.01, ge=0, le=1)
    sim_min_buffer_minutes: int = Field(5, ge=0)
    sim_max_buffer_minutes: int = Field(20, ge=0)

    # Demo data
    seed_on_startup: bool = False

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @model_validator(mode="after")
    def check_outcome_split(self) -> "Settings":
        total = (
            self.sim_deliver_probability + self.sim_refuse_probability
            + self.sim_cancel_probability
        )
        if abs(total - 1.0) > 1e-9:
            raise ValueError("simulation outcome probabilities must sum to 1.0")
        if self.sim_min_buffer_minutes > self.sim_max_buffer_minutes:
            raise ValueError("sim_min_buffer_minutes exceeds sim_max_buffer_minutes")
        return self

    def simulation_tuning(self) -> SimulationTuning:
        return SimulationTuning(
            failure_rate_per_minute=self.sim_failure_rate_per_minute,
            assign_probability=self.sim_assign_probability,
            deliver_probability=self.sim_deliver_probability,
            refuse_probability=self.sim_refuse_probability,
            cancel_probability=self.sim_cancel_probability,
            manager_cancel_probability=self.sim_manager_cancel_probability,
            min_buffer_minutes=self.sim_min_buffer_minutes,
            max_buffer_minutes=self.sim_max_buffer_minutes,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
