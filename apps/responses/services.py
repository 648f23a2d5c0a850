from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, Any, Tuple, Optional, Mapping
import json
import hashlib
import base64

from django.conf import settings
from django.utils.dateparse import parse_date, parse_datetime

from cryptography.fernet import Fernet, InvalidToken

from apps.surveys.models import Survey, SurveyQuestion, SurveyQuestionOption, QuestionType
from .models import SurveyResponse, SurveyAnswer

# Keys accepted in a structured answer payload, mapped to the column they fill.
VALUE_KEYS: Mapping[str, str] = {
    "optionId": "option",
    "textValue": "value_text",
    "numberValue": "value_number",
    "dateValue": "value_date",
    "fileUrl": "file_url",
}


# ---- Encryption utilities ------------------------------------------------------

def _derive_fernet(_alias: Optional[str]) -> Fernet:
    """
    Derive a Fernet key from RESPONSES_ENCRYPTION_SECRET (or SECRET_KEY fallback).

    Notes:
        - `_alias` is accepted for future multi-tenant / key-rotation routing; it is
          not currently used in the derivation, but kept for API stability.
    """
    secret = getattr(settings, "RESPONSES_ENCRYPTION_SECRET", None) or settings.SECRET_KEY or ""
    key_bytes = hashlib.sha256(str(secret).encode("utf-8")).digest()  # 32 bytes
    fernet_key = base64.urlsafe_b64encode(key_bytes)
    return Fernet(fernet_key)


def encrypt_value(raw: Any, alias: Optional[str] = None) -> Optional[bytes]:
    """
    Encrypt any JSON-serializable `raw` value. Returns None for None input.
    """
    if raw is None:
        return None
    f = _derive_fernet(alias)
    payload = json.dumps(raw, ensure_ascii=False, separators=(",", ":"), default=str).encode("utf-8")
    return f.encrypt(payload)


def decrypt_value(blob: Optional[bytes], alias: Optional[str] = None) -> Any:
    """
    Decrypt a blob produced by `encrypt_value`. Raises InvalidToken if the key does not match.
    """
    if blob is None:
        return None
    plaintext = _derive_fernet(alias).decrypt(bytes(blob))
    return json.loads(plaintext.decode("utf-8"))


# ---- Indexing / lookups --------------------------------------------------------

class SurveyIndex:
    """
    Lightweight in-memory index for a Survey:
      - by_key:  question code or str(question id) -> SurveyQuestion
      - options: question id -> {str(option id) and option value -> SurveyQuestionOption}
    """

    def __init__(self, by_key: Dict[str, SurveyQuestion], options: Dict[int, Dict[str, SurveyQuestionOption]]):
        self.by_key = by_key
        self.options = options

    @classmethod
    def build(cls, survey: Survey) -> "SurveyIndex":
        """
        Prefetch sections/questions/options once and prepare fast lookups.
        """
        sections = (
            survey.sections.all()
            .prefetch_related("questions__options")
        )
        by_key: Dict[str, SurveyQuestion] = {}
        options: Dict[int, Dict[str, SurveyQuestionOption]] = {}

        for sec in sections:
            for q in sec.questions.all():
                by_key[str(q.id)] = q
                by_key[q.code] = q
                lookup: Dict[str, SurveyQuestionOption] = {}
                for opt in q.options.all():
                    lookup[str(opt.value)] = opt
                    lookup[str(opt.id)] = opt
                options[q.id] = lookup
        return cls(by_key, options)

    def question(self, key: Any) -> SurveyQuestion:
        q = self.by_key.get(str(key))
        if q is None:
            raise ValueError(f"Unknown question '{key}'")
        return q

    def option(self, q: SurveyQuestion, key: Any) -> SurveyQuestionOption:
        opt = self.options.get(q.id, {}).get(str(key))
        if opt is None:
            raise ValueError(f"Invalid option '{key}' for question {q.code}")
        return opt


# ---- Coercion to storage fields ------------------------------------------------

def _to_decimal(q: SurveyQuestion, raw: Any) -> Decimal:
    if isinstance(raw, bool):
        raise ValueError(f"Invalid number for question {q.code}")
    try:
        num = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        raise ValueError(f"Invalid number for question {q.code}")
    if not num.is_finite():
        raise ValueError(f"Invalid number for question {q.code}")
    return num


def _to_date(q: SurveyQuestion, raw: Any) -> date:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    s = str(raw)
    try:
        d = parse_date(s)
        if d is None:
            dt = parse_datetime(s.replace("Z", "+00:00"))
            d = dt.date() if dt else None
    except ValueError:
        d = None
    if d is None:
        raise ValueError(f"Invalid date for question {q.code}")
    return d


def _typed_field(q: SurveyQuestion, column: str, raw: Any, index: SurveyIndex) -> Dict[str, Any]:
    """Convert one raw value into the storage column it belongs to."""
    if column == "option":
        return {"option": index.option(q, raw)}
    if column == "value_number":
        return {"value_number": _to_decimal(q, raw)}
    if column == "value_date":
        return {"value_date": _to_date(q, raw)}
    return {column: str(raw)}


def _column_for_scalar(q: SurveyQuestion, raw: Any) -> Tuple[str, Any]:
    """
    Pick the storage column for a bare (non-structured) answer based on the question type.

    Rules:
        - NUMBER:          -> value_number
        - DATE:            -> value_date
        - DROPDOWN/RADIO:  -> option (matched by option value or id)
        - CHECKBOX:        -> comma-separated values in value_text
        - FILE:            -> file_url
        - Default:         -> value_text
    """
    t = q.type
    if t == QuestionType.NUMBER:
        return "value_number", raw
    if t == QuestionType.DATE:
        return "value_date", raw
    if t in (QuestionType.DROPDOWN, QuestionType.RADIO):
        return "option", raw
    if t == QuestionType.CHECKBOX:
        if not isinstance(raw, list):
            raise ValueError(f"Expected list for checkbox question {q.code}")
        return "value_text", ",".join(str(v) for v in raw)
    if t == QuestionType.FILE:
        return "file_url", raw
    return "value_text", raw


def build_answer(
    response: SurveyResponse,
    q: SurveyQuestion,
    payload: Any,
    index: SurveyIndex,
    encryption_alias: Optional[str] = None,
) -> SurveyAnswer:
    """
    Build an unsaved SurveyAnswer from a final answer payload.

    Accepted payloads:
        - {"optionId" | "textValue" | "numberValue" | "dateValue" | "fileUrl": value, "metadata": {...}}
          with at most one value key set.
        - A bare value, stored according to the question type.

    Sensitive questions never store plaintext: the raw value goes to encrypted_value.
    """
    metadata = None
    if isinstance(payload, dict):
        unknown = set(payload) - set(VALUE_KEYS) - {"metadata"}
        if unknown:
            raise ValueError(f"Unsupported answer keys {sorted(unknown)} for question {q.code}")
        present = [(key, payload[key]) for key in VALUE_KEYS if payload.get(key) not in (None, "")]
        if len(present) > 1:
            raise ValueError(f"Answer for question {q.code} must carry exactly one value")
        metadata = payload.get("metadata")
        if present:
            key, raw = present[0]
            column = VALUE_KEYS[key]
        else:
            column, raw = None, None
    elif payload in (None, ""):
        column, raw = None, None
    else:
        column, raw = _column_for_scalar(q, payload)

    ans = SurveyAnswer(response=response, question=q, metadata=metadata)
    if column is None:
        return ans

    typed = _typed_field(q, column, raw, index)
    if q.sensitive:
        ans.encrypted_value = encrypt_value(raw, encryption_alias)
    else:
        for field, value in typed.items():
            setattr(ans, field, value)
    return ans


# ---- Persistence ----------------------------------------------------------------

def record_response(
    survey: Survey,
    final_answers: Dict[str, Any],
    *,
    started_at: Optional[datetime],
    submitted_at: datetime,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    respondent_email: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    encryption_alias: Optional[str] = None,
) -> SurveyResponse:
    """
    Write a permanent response and one answer per entry of `final_answers`.

    Callers own the transaction; this function performs no commit of its own.
    Raises ValueError for unknown questions/options or malformed values.
    """
    index = SurveyIndex.build(survey)

    # Resolve questions before touching the database.
    resolved = [(index.question(key), payload) for key, payload in (final_answers or {}).items()]
    seen: set[int] = set()
    for q, _ in resolved:
        if q.id in seen:
            raise ValueError(f"Duplicate answer for question {q.code}")
        seen.add(q.id)

    response = SurveyResponse.objects.create(
        survey=survey,
        respondent_email=respondent_email,
        is_complete=True,
        started_at=started_at,
        submitted_at=submitted_at,
        ip_address=ip_address,
        user_agent=user_agent,
        metadata=metadata or {},
    )

    answers = [build_answer(response, q, payload, index, encryption_alias) for q, payload in resolved]
    if answers:
        SurveyAnswer.objects.bulk_create(answers)

    return response


def read_answer_value(answer: SurveyAnswer) -> Any:
    """Return the stored value of an answer, decrypting sensitive ones."""
    if answer.encrypted_value is not None:
        try:
            return decrypt_value(answer.encrypted_value)
        except InvalidToken:
            return None
    if answer.option_id is not None:
        return answer.option.value
    if answer.value_text is not None:
        return answer.value_text
    if answer.value_number is not None:
        return float(answer.value_number)
    if answer.value_date is not None:
        return answer.value_date.isoformat()
    return answer.file_url
