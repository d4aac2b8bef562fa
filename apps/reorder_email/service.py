"""
Reorder email drafting.

``ReorderEmailGenerator`` talks to an OpenAI-compatible chat completions endpoint and
maps every upstream failure onto ``ExternalServiceError``. ``draft_reorder_email``
is what the purchase-order workflow uses: it never fails because of the upstream
service and falls back to an editable template draft instead.
"""

import logging
import re
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

import openai
from openai import AsyncOpenAI

from apps.reorder_email.schemas import ReorderEmailRequest
from common.exceptions import ExternalServiceError
from settings.config import get_settings

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT = "Reorder Request"

SYSTEM_PROMPT = (
    "You are a professional procurement specialist writing business emails.\n"
    "Generate concise, professional reorder emails that are polite but direct.\n"
    "Always include all provided details (item name, quantity, SKU, pricing if available).\n"
    "Format the email with proper greeting, body, and closing.\n"
    "Keep the tone professional and courteous."
)

_SUBJECT_RE = re.compile(r"^\s*Subject:\s*(.+?)\s*$", re.IGNORECASE | re.MULTILINE)


def estimated_total(request: ReorderEmailRequest) -> Optional[Decimal]:
    if request.unit_price is None:
        return None
    return (request.unit_price * request.reorder_quantity).quantize(Decimal("0.01"))


def _item_label(request: ReorderEmailRequest) -> str:
    return f"{request.item_name} (SKU: {request.sku})" if request.sku else request.item_name


def build_user_prompt(request: ReorderEmailRequest) -> str:
    lines = [
        "Generate a professional reorder email with these details:",
        "",
        f"Item: {_item_label(request)}",
        f"Current Stock: {request.current_quantity} units",
        f"Quantity to Order: {request.reorder_quantity} units",
    ]
    if request.unit_price is not None:
        lines.append(f"Unit Price: ${request.unit_price:.2f}")
        lines.append(f"Estimated Total: ${estimated_total(request):.2f}")
    supplier = request.supplier_name
    if request.supplier_email:
        supplier = f"{supplier} ({request.supplier_email})"
    lines += [
        "",
        f"Supplier: {supplier}",
        "",
        f"Sender: {request.sender_name}, {request.company_name}",
        "",
        "Write a professional email requesting this reorder. Include:",
        '1. Clear subject line (prefixed with "Subject: ")',
        "2. Professional greeting",
        "3. Clear statement of the order request",
        "4. All item details",
        "5. Request for order confirmation and expected delivery date",
        "6. Professional closing",
        "",
        "Keep the email concise but complete.",
    ]
    return "\n".join(lines)


def template_reorder_email(request: ReorderEmailRequest) -> str:
    """Deterministic draft used when text generation is unavailable; the user edits it before sending."""
    details = [
        f"- Item: {_item_label(request)}",
        f"- Quantity: {request.reorder_quantity} units",
    ]
    if request.unit_price is not None:
        details.append(f"- Unit price: ${request.unit_price:.2f}")
        details.append(f"- Estimated total: ${estimated_total(request):.2f}")
    return "\n".join(
        [
            f"Subject: {DEFAULT_SUBJECT} - {request.item_name}",
            "",
            f"Dear {request.supplier_name} team,",
            "",
            f"We would like to place an order for the following item (current stock: {request.current_quantity} units):",
            "",
            *details,
            "",
            "Please confirm this order and let us know the expected delivery date.",
            "",
            "Best regards,",
            request.sender_name,
            request.company_name,
        ]
    )


def split_subject(email: str) -> Tuple[str, str]:
    """
    Split a drafted email into (subject, body). Without a ``Subject:`` line the
    subject defaults to "Reorder Request" and the whole text is the body.
    """
    match = _SUBJECT_RE.search(email or "")
    if not match:
        return DEFAULT_SUBJECT, (email or "").strip()
    body = (email[: match.start()] + email[match.end():]).strip()
    return match.group(1), body


class ReorderEmailGenerator:
    """
    Thin wrapper over ``AsyncOpenAI`` chat completions.
    A preconfigured client may be injected (tests pass a stub).
    """

    def __init__(self, client: Optional[Any] = None, model: Optional[str] = None):
        settings = get_settings()
        self._client = client
        self.model = model or settings.LLM_MODEL
        self.temperature = settings.LLM_TEMPERATURE

    def _get_client(self):
        if self._client is None:
            settings = get_settings()
            if not settings.LLM_API_KEY:
                raise ExternalServiceError.not_configured()
            self._client = AsyncOpenAI(
                api_key=settings.LLM_API_KEY,
                base_url=settings.LLM_BASE_URL or None,
                timeout=settings.LLM_TIMEOUT_SECONDS,
            )
        return self._client

    async def generate(self, request: ReorderEmailRequest) -> str:
        client = self._get_client()
        logger.info("Generating reorder email for %s from %s", request.item_name, request.supplier_name)
        try:
            completion = await client.chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_user_prompt(request)},
                ],
            )
        except openai.RateLimitError as exc:
            logger.warning("Text generation rate limited")
            raise ExternalServiceError.rate_limited() from exc
        except openai.APIStatusError as exc:
            if exc.status_code == 402:
                logger.warning("Text generation credits exhausted")
                raise ExternalServiceError.credits_exhausted() from exc
            logger.error("Text generation gateway error: %s", exc.status_code)
            raise ExternalServiceError(f"Text generation gateway error: {exc.status_code}") from exc
        except openai.APIError as exc:
            logger.error("Text generation request failed: %s", exc)
            raise ExternalServiceError("Text generation service is unavailable.") from exc

        content = completion.choices[0].message.content if completion.choices else None
        if not content or not content.strip():
            raise ExternalServiceError("No email content generated.")
        return content.strip()


async def draft_reorder_email(request: ReorderEmailRequest, generator: ReorderEmailGenerator) -> Dict[str, Any]:
    """
    Draft an email for the reorder workflow. Never raises for upstream failures:
    the template draft is returned with ``source="template"`` and the error category.
    """
    error = None
    message = None
    try:
        email = await generator.generate(request)
        source = "ai"
    except ExternalServiceError as exc:
        logger.warning("Falling back to template reorder email (%s)", exc.reason)
        email = template_reorder_email(request)
        source = "template"
        error = exc.reason
        message = exc.message

    subject, body = split_subject(email)
    return {
        "email": email,
        "subject": subject,
        "body": body,
        "source": source,
        "error": error,
        "message": message,
        "reorder_quantity": request.reorder_quantity,
        "estimated_total": estimated_total(request),
    }


def get_reorder_email_generator() -> ReorderEmailGenerator:
    """FastAPI dependency; overridden in tests."""
    return ReorderEmailGenerator()
