"""Chat-completion client for ingredient analysis.

Wraps an OpenAI-compatible endpoint (DeepSeek by default). One client is
created per process and shared by all requests.
"""

from openai import OpenAI, OpenAIError

from src.errors import CompletionError
from src.utils.config import CompletionConfig
from src.utils.logger import get_logger

logger = get_logger(__name__)


class CompletionClient:
    """Sends analysis prompts to a chat-completion API.

    Args:
        config: Completion API configuration.
        client: Pre-built OpenAI client. Built from ``config`` when omitted.
    """

    def __init__(self, config: CompletionConfig, client: OpenAI | None = None) -> None:
        self.config = config
        self._client = client or OpenAI(api_key=config.api_key, base_url=config.base_url)

    @property
    def model(self) -> str:
        return self.config.model

    def complete(self, prompt: str) -> str:
        """Send a prompt and return the text of the single reply.

        Args:
            prompt: User prompt built from the OCR text.

        Returns:
            Content of the first choice.

        Raises:
            CompletionError: If the request fails or the reply is empty.
        """
        try:
            response = self._client.chat.completions.create(
                model=self.config.model,
                messages=[
                    {"role": "system", "content": self.config.system_prompt},
                    {"role": "user", "content": prompt},
                ],
            )
        except OpenAIError as exc:
            logger.error("Completion request to %s failed: %s", self.config.model, exc)
            raise CompletionError(f"Completion request failed: {exc}") from exc

        if not response.choices:
            raise CompletionError("Completion API returned no choices")

        content = response.choices[0].message.content
        if not content:
            raise CompletionError("Completion API returned an empty reply")

        logger.info("Received %d characters from %s", len(content), self.config.model)
        return content
