"""
Configuration models for the Prompt Matrix routing system.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional
import logging


@dataclass
class ProviderConfig:
    """Configuration of the active model provider."""
    provider: str = "deepseek"
    api_key: str = ""
    model: str = "deepseek-chat"
    base_url: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None
    custom_provider_id: Optional[str] = None
    reasoning_tokens: Optional[int] = None


@dataclass
class RouterConfig:
    """Settings for routing and conversation history."""
    max_history: int = 50
    confidence_threshold: float = 0.6
    max_log_entries: int = 1000


@dataclass
class LoggingConfig:
    """Configuration for system logging."""
    level: int = logging.INFO
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = "prompt_matrix.log"
    max_file_size_mb: int = 100
    backup_count: int = 5
    enable_console: bool = True
    enable_file: bool = True


@dataclass
class SystemConfig:
    """Main system configuration."""
    provider_config: ProviderConfig = field(default_factory=ProviderConfig)
    router_config: RouterConfig = field(default_factory=RouterConfig)
    logging_config: LoggingConfig = field(default_factory=LoggingConfig)
    prompt_dir: Optional[str] = None
    custom_providers_path: Optional[str] = None
    debug_mode: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)
