"""Configuration schema using Pydantic.

Single data model and defaults for the host, persisted to ~/.uiabridge/config.json.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings


class WorkerConfig(BaseModel):
    """How worker processes are launched."""
    python_executable: str = ""  # Empty means the interpreter running the host
    backend: Literal["auto", "memory", "uia"] = "auto"
    fixture_path: str = ""  # JSON element tree for the memory backend
    log_level: str = "INFO"
    max_line_bytes: int = 1024 * 1024
    extra_args: list[str] = Field(default_factory=list)
    cwd: str = ""


class SupervisorConfig(BaseModel):
    """Timeouts and restart policy for worker supervision."""
    default_timeout_seconds: float = 60.0
    pool_size: int = 1
    auto_restart: bool = True
    restart_delay_seconds: float = 0.1
    shutdown_grace_seconds: float = 3.0  # Wait after closing stdin before killing
    kill_wait_seconds: float = 2.0
    acquire_timeout_seconds: float = 30.0  # Pool only


class LoggingConfig(BaseModel):
    """Host-side logging."""
    level: str = "INFO"
    file_enabled: bool = True
    relay_worker_logs: bool = True


class ElementSearchDefaults(BaseModel):
    default_scope: str = "descendants"
    use_cache: bool = True
    use_regex: bool = False
    use_wildcard: bool = False
    max_results: int = 100
    timeout_seconds: int = 30


class WindowOperationDefaults(BaseModel):
    include_invisible: bool = False
    default_action: str = "setfocus"
    wait_timeout_seconds: int = 30


class TextOperationDefaults(BaseModel):
    ignore_case: bool = True
    backward: bool = False
    traverse_unit: str = "character"
    traverse_count: int = 1


class TransformDefaults(BaseModel):
    x: float = 0
    y: float = 0
    width: float = 100
    height: float = 100
    degrees: float = 0


class RangeValueDefaults(BaseModel):
    value: float = 0
    minimum: float = 0
    maximum: float = 100
    step: float = 1


class LayoutDefaults(BaseModel):
    dock_position: str = "none"
    expand_collapse_action: str = "toggle"
    scroll_direction: str = "down"
    scroll_amount: float = 1.0


class OperationDefaults(BaseModel):
    """Defaults filled into typed requests for fields the caller omitted."""
    element_search: ElementSearchDefaults = Field(default_factory=ElementSearchDefaults)
    window_operation: WindowOperationDefaults = Field(default_factory=WindowOperationDefaults)
    text_operation: TextOperationDefaults = Field(default_factory=TextOperationDefaults)
    transform: TransformDefaults = Field(default_factory=TransformDefaults)
    range_value: RangeValueDefaults = Field(default_factory=RangeValueDefaults)
    layout: LayoutDefaults = Field(default_factory=LayoutDefaults)


class EnvConfig(BaseModel):
    """Extra environment variables passed to worker processes."""
    vars: dict[str, str] | None = None


class Config(BaseSettings):
    """Root configuration for uiabridge."""
    worker: WorkerConfig = Field(default_factory=WorkerConfig)
    supervisor: SupervisorConfig = Field(default_factory=SupervisorConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    defaults: OperationDefaults = Field(default_factory=OperationDefaults)
    env: EnvConfig = Field(default_factory=EnvConfig)

    model_config = ConfigDict(
        env_prefix="UIABRIDGE_",
        env_nested_delimiter="__"
    )
