"""
Ask Service - HTTP-side wrapper around the ask engine.

Adds what the pure engine leaves to its caller:
- per-user fixed-window rate limiting (rate_limits table)
- AI credit accounting; only generated answers consume a credit
- persistence of AI preferences and calibration
- the redacted audit trail (ask_audit_log table, optional JSONL mirror)
"""

import json
import logging
from datetime import datetime, timedelta, UTC
from typing import Any, Callable, Dict

from sqlalchemy.orm import Session

from app.config import AskConfig, LLMConfig, RateLimitConfig
from app.models.ai_preferences import AIPreferencesUpdate, AskRequestBody, UserAIPreferences
from app.models.ask_audit import AskAuditLog, RateLimit
from app.models.user_profile import UserProfile
from app.services import llm_service
from app.services.credit_profile_service import CreditProfileService
from app.services.errors import ServiceError, not_found
from cardpilot.ask import AnswerDepth, AskContext, AskEngine, AskRequest, AuditRecord, GenerationRequest
from cardpilot.ask.calibration import map_calibration_to_preferences, next_initial_question
from cardpilot.errors import AnswerContractError, LLMQuotaError, LLMUnavailableError, OnboardingRequiredError

logger = logging.getLogger(__name__)

ASK_BUCKET = "ask"


class CreditsExhaustedError(Exception):
    pass


def _utc_now_naive() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class AskService:
    def __init__(self, db: Session, clock: Callable[[], datetime] = _utc_now_naive) -> None:
        self.db = db
        self.clock = clock

    # Preferences

    def _require_user(self, user_id: int) -> UserProfile:
        user = self.db.get(UserProfile, user_id)
        if not user:
            raise not_found("Profile not found.", user_id=user_id)
        return user

    def _preferences(self, user_id: int) -> UserAIPreferences:
        prefs = self.db.query(UserAIPreferences).filter(UserAIPreferences.user_id == user_id).first()
        if prefs is None:
            prefs = UserAIPreferences(user_id=user_id, ai_credits=AskConfig.DEFAULT_CREDITS)
            self.db.add(prefs)
            self.db.commit()
            self.db.refresh(prefs)
        return prefs

    def get_preferences(self, user_id: int) -> Dict[str, Any]:
        self._require_user(user_id)
        return self._preferences(user_id).to_dict()

    def put_preferences(self, user_id: int, payload: AIPreferencesUpdate) -> Dict[str, Any]:
        self._require_user(user_id)
        prefs = self._preferences(user_id)
        if payload.answer_depth is not None:
            prefs.answer_depth = AnswerDepth(payload.answer_depth).value
        if payload.calibration_answers is not None:
            pending = next_initial_question(payload.calibration_answers)
            if pending is not None:
                raise ServiceError(
                    400,
                    "VALIDATION_ERROR",
                    "Calibration answers are incomplete.",
                    {"missing": pending.id},
                )
            mapped = map_calibration_to_preferences(payload.calibration_answers)
            prefs.calibration = mapped.calibration
            if payload.answer_depth is None:
                prefs.answer_depth = mapped.answer_depth.value
        self.db.commit()
        self.db.refresh(prefs)
        return prefs.to_dict()

    # Rate limiting

    def check_rate_limit(self, user_id: int) -> None:
        """Count this request in the current one-minute window, 429 when over the limit."""
        now = self.clock()
        window = timedelta(seconds=RateLimitConfig.WINDOW_SECONDS)
        row = (
            self.db.query(RateLimit)
            .filter(RateLimit.user_id == user_id, RateLimit.bucket == ASK_BUCKET)
            .first()
        )
        if row is None:
            row = RateLimit(user_id=user_id, bucket=ASK_BUCKET, window_start=now, request_count=0)
            self.db.add(row)
        elif now - row.window_start >= window:
            row.window_start = now
            row.request_count = 0

        if row.request_count >= RateLimitConfig.ASK_PER_MINUTE:
            retry_after = max(1, int((row.window_start + window - now).total_seconds()))
            self.db.commit()
            raise ServiceError(
                429,
                "RATE_LIMITED",
                "Too many questions. Please wait before asking again.",
                {"retry_after_seconds": retry_after, "limit_per_minute": RateLimitConfig.ASK_PER_MINUTE},
                headers={"Retry-After": str(retry_after)},
            )
        row.request_count += 1
        self.db.commit()

    # Ask

    def ask(self, user_id: int, body: AskRequestBody) -> Dict[str, Any]:
        self._require_user(user_id)
        self.check_rate_limit(user_id)

        prefs = self._preferences(user_id)
        context = AskContext(
            user_id=f"u_{user_id:03d}",
            profile=CreditProfileService(self.db).get_core_profile(user_id),
            stored_depth=AnswerDepth(prefs.answer_depth) if prefs.answer_depth else None,
            stored_calibration=prefs.calibration or None,
        )

        def generate(request: GenerationRequest) -> str:
            if prefs.ai_credits <= 0:
                raise CreditsExhaustedError()
            raw = llm_service.generate_answer(request)
            prefs.ai_credits -= 1
            return raw

        engine = AskEngine(
            generator=generate if llm_service.openai_client else None,
            audit_sink=lambda record: self._write_audit(user_id, record),
            model_name=LLMConfig.MODEL,
        )

        try:
            response = engine.ask(
                AskRequest(
                    question=body.question,
                    answer_depth=body.answer_depth,
                    calibration_answers=body.calibration_answers,
                    context=body.context,
                ),
                context,
            )
        except ValueError as exc:
            raise ServiceError(400, "VALIDATION_ERROR", str(exc), {"field": "question"})
        except OnboardingRequiredError as exc:
            raise ServiceError(403, "ONBOARDING_REQUIRED", str(exc), {"next": "/api/v1/credit-profile"})
        except CreditsExhaustedError:
            raise ServiceError(
                402,
                "AI_CREDITS_EXHAUSTED",
                "You have used all of your AI credits.",
                {"ai_credits": 0},
            )
        except LLMQuotaError as exc:
            raise ServiceError(500, "AI_ERROR", "AI provider quota exceeded.", {"reason": str(exc)})
        except LLMUnavailableError as exc:
            raise ServiceError(500, "AI_UNAVAILABLE", "AI answers are unavailable right now.", {"reason": str(exc)})
        except AnswerContractError as exc:
            logger.error("Answer generator broke the output contract: %s", exc)
            raise ServiceError(500, "INVALID_OUTPUT_SCHEMA", "AI returned an invalid answer.", {})

        if not context.stored_calibration and next_initial_question(body.calibration_answers) is None:
            mapped = map_calibration_to_preferences(body.calibration_answers)
            prefs.calibration = mapped.calibration
            prefs.answer_depth = prefs.answer_depth or mapped.answer_depth.value

        self.db.commit()
        result = response.model_dump(mode="json")
        result["ai_credits_remaining"] = prefs.ai_credits
        return result

    def _write_audit(self, user_id: int, record: AuditRecord) -> None:
        self.db.add(
            AskAuditLog(
                request_id=record.request_id,
                user_id=user_id,
                question_redacted=record.question_redacted,
                redaction_types=list(record.redaction_types),
                question_type=record.question_type.value,
                answer_depth=record.answer_depth.value,
                outcome=record.outcome,
                llm_called=record.llm_called,
                answer=record.answer,
                created_at=record.created_at.astimezone(UTC).replace(tzinfo=None),
            )
        )
        if AskConfig.AUDIT_LOG_PATH:
            entry = {
                "request_id": record.request_id,
                "user_id": record.user_id,
                "question_redacted": record.question_redacted,
                "redaction_types": list(record.redaction_types),
                "question_type": record.question_type.value,
                "answer_depth": record.answer_depth.value,
                "outcome": record.outcome,
                "llm_called": record.llm_called,
                "created_at": record.created_at.isoformat(),
            }
            try:
                with open(AskConfig.AUDIT_LOG_PATH, "a", encoding="utf-8") as f:
                    f.write(json.dumps(entry) + "\n")
            except OSError:
                logger.exception("Failed to append ask audit entry to %s", AskConfig.AUDIT_LOG_PATH)

    def list_audit(self, user_id: int, limit: int = 50) -> list:
        rows = (
            self.db.query(AskAuditLog)
            .filter(AskAuditLog.user_id == user_id)
            .order_by(AskAuditLog.created_at.desc(), AskAuditLog.id.desc())
            .limit(limit)
            .all()
        )
        return [
            {
                "request_id": row.request_id,
                "question_redacted": row.question_redacted,
                "redaction_types": row.redaction_types,
                "question_type": row.question_type,
                "answer_depth": row.answer_depth,
                "outcome": row.outcome,
                "llm_called": row.llm_called,
                "created_at": row.created_at.isoformat(),
            }
            for row in rows
        ]
