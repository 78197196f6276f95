"""Claude API client: the completion backend every task talks to."""

import logging

import anthropic

from config.defaults import DEFAULTS
from core.errors import TransportError

logger = logging.getLogger(__name__)


class CompletionClient:
    """Thin wrapper around the Anthropic SDK with a single complete() call.

    SDK-level retries are disabled: a timeout or transport failure surfaces
    as TransportError and retry policy stays with the caller.
    """

    def __init__(self, api_key, model=None, base_url=None, client=None):
        if client is None and not api_key:
            raise RuntimeError(
                "ANTHROPIC_API_KEY environment variable is not set. "
                "Get a key at https://console.anthropic.com/ and run:\n"
                "  export ANTHROPIC_API_KEY='your-key-here'"
            )
        self.model = model or DEFAULTS["model"]
        if client is None:
            kwargs = {"api_key": api_key, "max_retries": 0}
            if base_url:
                kwargs["base_url"] = base_url
            client = anthropic.Anthropic(**kwargs)
        self._client = client

    @classmethod
    def from_settings(cls, settings):
        return cls(
            api_key=settings.anthropic_api_key,
            model=settings.generation.model,
            base_url=settings.anthropic_base_url or None,
        )

    def complete(self, system_prompt, user_prompt, max_tokens, temperature, timeout, model=None):
        """Return the full text of one completion.

        Raises:
            TransportError: on timeout, connection failure or an API error status.
        """
        model = model or self.model
        logger.debug("Requesting completion: model=%s max_tokens=%d timeout=%ss",
                     model, max_tokens, timeout)
        try:
            # Streaming avoids the SDK's refusal of long non-streamed requests
            text = ""
            with self._client.messages.stream(
                model=model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
                timeout=timeout,
            ) as stream:
                for chunk in stream.text_stream:
                    text += chunk
                final = stream.get_final_message()
        except anthropic.APITimeoutError as e:
            raise TransportError(f"Request timed out after {timeout}s", "anthropic") from e
        except anthropic.APIConnectionError as e:
            raise TransportError(f"Connection failed: {e}", "anthropic") from e
        except anthropic.APIStatusError as e:
            raise TransportError(str(e.message), "anthropic", status=e.status_code) from e
        except anthropic.APIError as e:
            raise TransportError(str(e), "anthropic") from e

        if final.stop_reason == "max_tokens":
            logger.warning("Completion hit the %d token limit; output is likely truncated",
                           max_tokens)
        logger.debug("Completion returned %d chars (stop_reason=%s)", len(text), final.stop_reason)
        return text
