"""
LLM Service - the two external AI calls made by the backend.

1. Merchant classification: url/domain/title -> strict JSON category verdict.
   Sent over HTTP (requests) when MERCHANT_CLASSIFIER_URL is set, otherwise
   to OpenAI in-process.
2. Answer generation for the ask endpoint: strict JSON HardAnswer text.

Neither call retries on its own; failures surface as typed errors and the
callers decide how to degrade.
"""

import json
import logging
from typing import Optional

import requests
from openai import OpenAI, APIError, APITimeoutError, RateLimitError

from app.config import LLMConfig, MerchantAIConfig
from cardpilot.ask import GenerationRequest
from cardpilot.categories import MerchantCategory
from cardpilot.classifier import ClassifierTransport
from cardpilot.errors import LLMQuotaError, LLMUnavailableError

logger = logging.getLogger(__name__)


# Initialize OpenAI client (only if API key present)
openai_client = None

if LLMConfig.API_KEY:
    openai_client = OpenAI(
        api_key=LLMConfig.API_KEY,
        timeout=float(LLMConfig.TIMEOUT_SECONDS),
        max_retries=LLMConfig.MAX_RETRIES,
    )
    logger.info("OpenAI client initialized with model: %s", LLMConfig.MODEL)
else:
    logger.warning(
        "OPENAI_API_KEY not set. Merchant classification falls back to defaults "
        "and the ask endpoint will report AI_UNAVAILABLE."
    )


MERCHANT_SYSTEM_PROMPT = (
    "You classify online merchants for a credit-card rewards assistant. "
    "Respond with ONE JSON object: "
    '{"category": string, "confidence": "low"|"medium"|"high", "rationale": string, "merchantName": string}. '
    "category must be exactly one of: " + ", ".join(c.value for c in MerchantCategory) + ". "
    "Use 'other' when unsure and lower the confidence instead of guessing."
)


def build_merchant_prompt(payload: dict) -> str:
    lines = [f"URL: {payload['url']}", f"Domain: {payload['domain']}"]
    if payload.get("title"):
        lines.append(f"Page title: {payload['title']}")
    return "\n".join(lines)


def classify_merchant_with_openai(payload: dict) -> dict:
    """
    Ask OpenAI for a merchant classification.

    Returns the decoded JSON object unvalidated; the caller checks the
    category against the enum.

    Raises:
        LLMUnavailableError: no client, timeout, API error or non-JSON output
        LLMQuotaError: OpenAI rate limit / quota
    """
    if not openai_client:
        raise LLMUnavailableError("OpenAI client not configured")

    content = _chat(
        system_prompt=MERCHANT_SYSTEM_PROMPT,
        user_prompt=build_merchant_prompt(payload),
        temperature=MerchantAIConfig.TEMPERATURE,
        max_tokens=200,
    )
    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise LLMUnavailableError(f"Merchant classifier returned non-JSON output: {e}")


def classify_merchant_over_http(payload: dict) -> dict:
    """POST the classification request to the configured classifier endpoint."""
    response = requests.post(
        MerchantAIConfig.CLASSIFIER_URL,
        json=payload,
        timeout=MerchantAIConfig.HTTP_TIMEOUT_SECONDS,
    )
    response.raise_for_status()
    return response.json()


def get_classifier_transport() -> Optional[ClassifierTransport]:
    if MerchantAIConfig.CLASSIFIER_URL:
        return classify_merchant_over_http
    if openai_client:
        return classify_merchant_with_openai
    return None


def generate_answer(request: GenerationRequest) -> str:
    """Answer generator for the ask engine. Returns raw model text."""
    if not openai_client:
        raise LLMUnavailableError("OpenAI client not configured")
    return _chat(
        system_prompt=request.system_prompt,
        user_prompt=request.question,
        temperature=LLMConfig.TEMPERATURE,
        max_tokens=LLMConfig.MAX_TOKENS,
    )


def _chat(system_prompt: str, user_prompt: str, temperature: float, max_tokens: int) -> str:
    try:
        response = openai_client.chat.completions.create(
            model=LLMConfig.MODEL,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
            response_format={"type": "json_object"},
        )
    except RateLimitError as e:
        logger.warning("OpenAI quota or rate limit hit: %s", e)
        raise LLMQuotaError(str(e))
    except APITimeoutError:
        logger.warning("OpenAI API timeout after %ss", LLMConfig.TIMEOUT_SECONDS)
        raise LLMUnavailableError("OpenAI request timed out")
    except APIError as e:
        logger.error("OpenAI API error: %s", e)
        raise LLMUnavailableError(str(e))

    content = (response.choices[0].message.content or "").strip()
    if not content:
        raise LLMUnavailableError("OpenAI returned an empty response")
    logger.info("OpenAI call completed (model: %s)", LLMConfig.MODEL)
    return content
