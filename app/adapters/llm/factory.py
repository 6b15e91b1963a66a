"""Factory pattern for creating LLM client instances."""

from app.adapters.llm.base import AbstractLLMClient
from app.adapters.llm.openai_client import OpenAIClient
from app.core.config import LLMSettings
from app.core.errors import ConfigurationAppError


def create_llm_client(llm_settings: LLMSettings) -> AbstractLLMClient:
    """Instantiate the LLM client for the configured provider.

    Args:
        llm_settings: Resolved LLM configuration.

    Returns:
        AbstractLLMClient: Configured LLM client instance.

    Raises:
        ConfigurationAppError: If provider-specific requirements are not met.
    """
    provider = llm_settings.provider.lower()

    if provider == "openai":
        if not llm_settings.api_key:
            raise ConfigurationAppError(
                code="llm_missing_api_key",
                message="LLM_API_KEY is not configured",
            )
        return OpenAIClient(
            api_key=llm_settings.api_key,
            model=llm_settings.model,
            base_url=llm_settings.base_url,
            timeout_seconds=llm_settings.timeout_seconds,
        )

    raise ConfigurationAppError(
        code="llm_unknown_provider",
        message=f"Unknown LLM provider: '{provider}'. Supported providers: openai",
    )
