"""
Completion client for OpenAI-compatible chat completion endpoints.
"""

from typing import Dict, Optional, Any, List, Iterator, Sequence, Union

from openai import OpenAI

from ..models import Message, ProviderConfig, ProviderType
from ..utils import get_logger
from ..utils.config_manager import normalize_base_url
from ..utils.error_handling import APIError, ConfigurationError
from ..utils.provider_store import CustomProviderStore

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 4096
DEFAULT_TOP_P = 0.95

# Hard output ceilings; larger requests are truncated instead of rejected
PROVIDER_MAX_TOKENS: Dict[str, int] = {
    ProviderType.DEEPSEEK.value: 8192,
}

OPENROUTER_HEADERS = {
    "HTTP-Referer": "https://github.com/prompt-matrix/prompt-matrix",
    "X-Title": "Prompt Matrix",
}

# OpenAI reasoning models take max_completion_tokens instead of max_tokens
_COMPLETION_TOKEN_MODELS = ("o1", "o3", "o4", "gpt-5")

ChatMessages = Sequence[Union[Message, Dict[str, str]]]


class CompletionClient:
    """
    Client bound to a single configured model provider.

    Exposes a blocking ``chat`` call and a streaming ``chat_stream`` call that
    yields text fragments in arrival order. Nothing is retried here; retry
    policy belongs to the caller.
    """

    def __init__(self, provider_store: Optional[CustomProviderStore] = None):
        self.provider_store = provider_store
        self.logger = get_logger(__name__)
        self._client: Optional[OpenAI] = None
        self._config: Optional[ProviderConfig] = None
        self._provider_defaults: Dict[str, Any] = {}

    def initialize(self, config: ProviderConfig) -> None:
        """
        Bind the client to a provider configuration, replacing any previous one.

        Args:
            config: Provider configuration

        Raises:
            ConfigurationError: If the provider is unsupported or a custom
                provider cannot be resolved
        """
        supported = [p.value for p in ProviderType]
        if config.provider not in supported:
            raise ConfigurationError(f"Unsupported provider: {config.provider}", config_key="provider")

        api_key = config.api_key
        base_url = normalize_base_url(config.provider, config.base_url)
        default_headers: Dict[str, str] = {}
        provider_defaults: Dict[str, Any] = {}

        if config.provider == ProviderType.CUSTOM.value:
            if not config.custom_provider_id:
                raise ConfigurationError("Custom provider id is required", config_key="custom_provider_id")
            custom = self.provider_store.get_provider(config.custom_provider_id) if self.provider_store else None
            if custom is None:
                raise ConfigurationError(
                    f"Custom provider not found: {config.custom_provider_id}",
                    config_key="custom_provider_id"
                )
            base_url = custom.base_url
            api_key = api_key or custom.api_key or ""
            provider_defaults = {
                "temperature": custom.temperature,
                "max_tokens": custom.max_tokens,
                "top_p": custom.top_p,
            }
        elif config.provider == ProviderType.OPENROUTER.value:
            default_headers.update(OPENROUTER_HEADERS)

        self._client = OpenAI(
            api_key=api_key,
            base_url=base_url,
            default_headers=default_headers or None,
            max_retries=0,
        )
        self._config = config
        self._provider_defaults = provider_defaults
        self.logger.info(f"Completion client initialized with provider: {config.provider} ({base_url})")

    def is_initialized(self) -> bool:
        return self._client is not None and self._config is not None

    def get_config(self) -> Optional[ProviderConfig]:
        return self._config

    def resolve_options(self, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Merge per-call options over the active config over built-in defaults.

        Each field is resolved independently; ``None`` counts as absent.
        """
        config = self._require_config()
        options = options or {}

        def pick(key: str, default: Any) -> Any:
            for source in (options.get(key), getattr(config, key), self._provider_defaults.get(key)):
                if source is not None:
                    return source
            return default

        resolved = {
            "model": options.get("model") or config.model,
            "temperature": pick("temperature", DEFAULT_TEMPERATURE),
            "max_tokens": pick("max_tokens", DEFAULT_MAX_TOKENS),
            "top_p": pick("top_p", DEFAULT_TOP_P),
            "reasoning_tokens": pick("reasoning_tokens", None),
        }

        ceiling = PROVIDER_MAX_TOKENS.get(config.provider)
        if ceiling and resolved["max_tokens"] > ceiling:
            self.logger.debug(f"Clamping max_tokens {resolved['max_tokens']} to {ceiling} for {config.provider}")
            resolved["max_tokens"] = ceiling

        return resolved

    def chat(self, messages: ChatMessages, options: Optional[Dict[str, Any]] = None) -> str:
        """
        Send messages and wait for the full completion.

        Args:
            messages: Conversation, system message first
            options: Per-call overrides (model, temperature, max_tokens, top_p,
                reasoning_tokens)

        Returns:
            The assistant text, or an empty string if the provider sent none

        Raises:
            ConfigurationError: If the client is not initialized
            APIError: On any transport or provider failure
        """
        client = self._require_client()
        params = self._build_request(messages, self.resolve_options(options))

        try:
            self.logger.debug(f"Sending chat request: model={params['model']}, messages={len(params['messages'])}")
            response = client.chat.completions.create(**params)

            content = ""
            if response.choices:
                content = response.choices[0].message.content or ""
            tokens_used = response.usage.total_tokens if response.usage else None

            self.logger.debug(f"Chat response received: tokens={tokens_used}, length={len(content)}")
            return content

        except Exception as e:
            self.logger.error(f"Chat request failed: {str(e)}")
            raise APIError(
                f"LLM request failed: {str(e)}",
                operation="chat",
                status_code=getattr(e, "status_code", None)
            ) from e

    def chat_stream(self, messages: ChatMessages, options: Optional[Dict[str, Any]] = None) -> Iterator[str]:
        """
        Stream a completion as text fragments.

        Configuration problems raise immediately; transport failures raise
        from the iterator, possibly after some fragments were delivered.

        Args:
            messages: Conversation, system message first
            options: Per-call overrides, as for ``chat``

        Returns:
            Iterator over non-empty text fragments in arrival order
        """
        client = self._require_client()
        params = self._build_request(messages, self.resolve_options(options), stream=True)
        return self._iter_stream(client, params)

    def _iter_stream(self, client: OpenAI, params: Dict[str, Any]) -> Iterator[str]:
        try:
            stream = client.chat.completions.create(**params)
        except Exception as e:
            self.logger.error(f"Stream request failed: {str(e)}")
            raise APIError(f"LLM stream failed: {str(e)}", operation="chat_stream",
                           status_code=getattr(e, "status_code", None)) from e

        try:
            for chunk in stream:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield content
        except Exception as e:
            self.logger.error(f"Stream request failed: {str(e)}")
            raise APIError(f"LLM stream failed: {str(e)}", operation="chat_stream",
                           status_code=getattr(e, "status_code", None)) from e
        finally:
            close = getattr(stream, "close", None)
            if close:
                close()

    def list_models(self) -> List[str]:
        """List model ids offered by the provider."""
        client = self._require_client()
        try:
            return [model.id for model in client.models.list()]
        except Exception as e:
            self.logger.error(f"Model listing failed: {str(e)}")
            raise APIError(f"LLM model listing failed: {str(e)}", operation="list_models",
                           status_code=getattr(e, "status_code", None)) from e

    def test_connection(self) -> bool:
        """Send a minimal chat; returns True or raises the wrapped error."""
        self.chat([Message(role="user", content="ping")], {"max_tokens": 8})
        self.logger.info("Connection test succeeded")
        return True

    def _build_request(self, messages: ChatMessages, resolved: Dict[str, Any],
                       stream: bool = False) -> Dict[str, Any]:
        """Translate resolved options into chat.completions.create arguments."""
        config = self._require_config()
        params: Dict[str, Any] = {
            "model": resolved["model"],
            "messages": [m.to_dict() if isinstance(m, Message) else dict(m) for m in messages],
            "temperature": resolved["temperature"],
            "top_p": resolved["top_p"],
        }

        if config.provider == ProviderType.OPENAI.value and str(resolved["model"]).startswith(_COMPLETION_TOKEN_MODELS):
            params["max_completion_tokens"] = resolved["max_tokens"]
        else:
            params["max_tokens"] = resolved["max_tokens"]

        if resolved["reasoning_tokens"] and config.provider == ProviderType.OPENROUTER.value:
            params["extra_body"] = {"reasoning": {"max_tokens": resolved["reasoning_tokens"]}}

        if stream:
            params["stream"] = True
        return params

    def _require_client(self) -> OpenAI:
        if self._client is None or self._config is None:
            raise ConfigurationError("Completion client not initialized. Call initialize() first.")
        return self._client

    def _require_config(self) -> ProviderConfig:
        if self._config is None:
            raise ConfigurationError("Completion client not initialized. Call initialize() first.")
        return self._config
