"""Component Context Service Client"""

import asyncio
from typing import Any

import httpx
import pybreaker

from ..core.logging_config import get_logger
from .interfaces import ComponentContext, ComponentRule

logger = get_logger(__name__)

CONTEXT_VERSION = "context-http-v1"
MISSING_RULE_NOTE = "No rule details returned by server."


class ContextFetchError(Exception):
    """Component context could not be fetched."""


def _strings(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def sanitize_rules(value: Any, requested: list[str]) -> list[ComponentRule]:
    """
    Keep well-formed rules from a server reply.

    Entries without a string name are dropped; if nothing usable remains,
    every requested name gets an empty default rule.
    """
    rules = []
    for item in value if isinstance(value, list) else []:
        if not isinstance(item, dict) or not isinstance(item.get("name"), str):
            continue
        rules.append(
            ComponentRule(
                name=item["name"],
                allowed_props=_strings(item.get("allowedProps")),
                variants=_strings(item.get("variants")),
                composition_rules=_strings(item.get("compositionRules")),
                supported_events=_strings(item.get("supportedEvents")),
                binding_hints=_strings(item.get("bindingHints")),
                notes=item["notes"] if isinstance(item.get("notes"), str) else "",
            )
        )

    if rules:
        return rules
    return [ComponentRule(name=name, notes=MISSING_RULE_NOTE) for name in requested]


class HttpContextClient:
    """
    Client for the component context service with circuit breaker protection.

    Failures raise ContextFetchError: a generation cannot continue without
    its context.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str | None = None,
        timeout: float = 5.0,
        fail_max: int = 5,
        reset_timeout: int = 30,
    ) -> None:
        """
        Initialize context client with circuit breaker.

        Args:
            endpoint: URL accepting POST {"componentNames": [...]}
            api_key: Optional bearer token
            timeout: Request timeout in seconds
            fail_max: Consecutive failures before the breaker opens
            reset_timeout: Seconds before the breaker lets a trial call through
        """
        self.endpoint = endpoint
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = httpx.Client(timeout=timeout, headers=headers)

        class BreakerListener(pybreaker.CircuitBreakerListener):
            """Listener for circuit breaker state changes."""

            def state_change(self, cb, old_state, new_state):
                """Called when circuit breaker state changes."""
                logger.warning(
                    "breaker_state_change",
                    breaker=cb.name,
                    from_state=str(old_state),
                    to_state=str(new_state),
                )

        self._breaker = pybreaker.CircuitBreaker(
            fail_max=fail_max,
            reset_timeout=reset_timeout,
            name="context-http",
            listeners=[BreakerListener()],
        )

        logger.info("client_init", url=self.endpoint)

    def fetch_context_sync(self, names: list[str]) -> ComponentContext:
        """
        Fetch rules for the named components.

        Args:
            names: Component names reported by the model

        Returns:
            Component context (no request is made for an empty list)

        Raises:
            ContextFetchError: On HTTP failure, bad payload or open breaker
        """
        if not names:
            return ComponentContext(context_version=CONTEXT_VERSION, component_rules=[])

        def _make_request() -> httpx.Response:
            response = self._client.post(self.endpoint, json={"componentNames": names})
            response.raise_for_status()
            return response

        try:
            response = self._breaker.call(_make_request)
            data = response.json()
        except pybreaker.CircuitBreakerError as e:
            logger.error("fetch_failed", error="Circuit breaker open - context service unavailable")
            raise ContextFetchError("Context service unavailable (circuit open)") from e
        except httpx.HTTPStatusError as e:
            logger.warning("http_error", status=e.response.status_code)
            raise ContextFetchError(
                f"Context request failed ({e.response.status_code}): {e.response.text}"
            ) from e
        except httpx.HTTPError as e:
            logger.warning("http_error", error=str(e))
            raise ContextFetchError(f"Context request failed: {e}") from e
        except ValueError as e:
            logger.error("invalid_response", error=str(e))
            raise ContextFetchError("Context service returned invalid JSON") from e

        if not isinstance(data, dict):
            logger.error("invalid_response", type=type(data).__name__)
            raise ContextFetchError(f"Expected JSON object, got {type(data).__name__}")

        version = data.get("contextVersion")
        context = ComponentContext(
            context_version=version if isinstance(version, str) and version else CONTEXT_VERSION,
            component_rules=sanitize_rules(data.get("componentRules"), names),
        )
        logger.info("fetched", version=context.context_version, rules=len(context.component_rules))
        return context

    async def fetch_context(self, names: list[str]) -> ComponentContext:
        """Async wrapper running the blocking request in a worker thread."""
        return await asyncio.to_thread(self.fetch_context_sync, names)

    def close(self) -> None:
        """Close HTTP client."""
        self._client.close()
