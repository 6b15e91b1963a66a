from abc import ABC, abstractmethod

from app.schemas.chat import CompletionRequest, CompletionResult


class AbstractLLMClient(ABC):
	"""Interface for chat-completion providers."""

	@abstractmethod
	async def complete(self, request: CompletionRequest) -> CompletionResult:
		"""Send one chat-completion request and return the normalized reply.

		Args:
			request: Model, conversation and temperature to send upstream.

		Returns:
			CompletionResult: Trimmed reply text with usage/model metadata.

		Raises:
			UpstreamAPIError: If the provider answers with a non-2xx status.
			UpstreamUnavailableError: If the provider cannot be reached.
		"""
		...
