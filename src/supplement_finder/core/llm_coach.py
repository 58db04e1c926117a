from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

import requests
from urllib3.util.retry import Retry

from supplement_finder.config import (
    COACH_TIMEOUT_SECONDS,
    OPENAI_API_KEY,
    OPENAI_CHAT_COMPLETIONS_URL,
    OPENAI_MODEL,
    SearchConfig,
)
from supplement_finder.core.coach import (
    DIRECT_BENEFITS_COL,
    DOSAGE_COL,
    INDIRECT_BENEFITS_COL,
    RISKS_COL,
    WHY_TOP_CHOICE_COL,
)
from supplement_finder.core.http_session import get_session
from supplement_finder.core.records import SupplementRecord

logger = logging.getLogger(__name__)

REASON_NO_API_KEY = "NO_API_KEY"
REASON_BAD_INPUT = "BAD_INPUT"
REASON_API_ERROR = "API_ERROR"
REASON_EMPTY = "EMPTY"

MIN_TEXT_LENGTH = 60
TEMPERATURE = 0.2

FALLBACK_PARAGRAPH = "Add-on unavailable; using CSV summaries only."

# Clinician-approved facts the model may add beyond the CSV.
# Keyed by normalized supplement key; curate over time.
AUGMENT_RULES: Dict[str, List[str]] = {
    "creatine": [
        "Creatine consistently supports maintenance and accrual of lean muscle mass when combined with progressive resistance training.",
        "Preserving muscle mass reduces frailty risk and supports glucose handling and physical activity, which indirectly benefits brain health.",
    ],
    "protein": [
        "Adequate daily protein (distributed across meals) preserves and builds muscle, supporting strength, function, and metabolic health.",
        "Protein intake complements resistance training and may indirectly protect cognition by reducing sarcopenia and metabolic stress.",
    ],
    "whey_protein": [
        "Whey is rapidly absorbed and leucine-rich, useful post-exercise to stimulate muscle protein synthesis.",
        "Consider lactose tolerance and overall daily protein targets.",
    ],
    "omega_3": [
        "EPA/DHA support cardiometabolic health and recovery perception; they are not a substitute for sufficient protein or training.",
        "Improved cardiometabolic health indirectly benefits brain function.",
    ],
    "magnesium": [
        "Magnesium participates in neuromuscular excitability and may aid sleep quality, especially if intake is suboptimal.",
        "Correcting deficiency can improve energy metabolism and reduce cramps or sleep fragmentation.",
    ],
}

GOAL_NAMES = {
    "sleep": "Sleep",
    "metabolic": "Metabolic",
    "cardiovascular": "Cardiovascular",
    "immune": "Immune",
    "anti_inflammatory": "Inflammation",
}

PROMPT_FIELDS = (
    "level_of_evidence",
    "mechanisms",
    "direct_cognitive_benefits",
    "indirect_cognitive_benefits",
    "suggested_dosage",
    "potential_risks",
    "why_top_choice",
)

SYSTEM_PROMPT = "\n".join(
    [
        "You are a conservative clinical summarizer for brain-health supplements.",
        "Use ONLY the provided CSV fields and clinician-approved AUGMENT bullets.",
        "Do not invent new claims, dosages, risks, or mechanisms beyond those sources.",
        "Paraphrase; avoid repeating CSV sentences verbatim.",
        "Write ~120–160 words total as exactly 3 short paragraphs separated by a blank line.",
        "Para 1: Evidence confidence (based on level_of_evidence) + one sentence tailored to selected goals if provided.",
        "Para 2: Mechanistic rationale and expected pathway; mention dose only if provided.",
        "Para 3: Monitoring focus tied to goals + one practical coaching tip from why_top_choice or AUGMENT.",
        "If AUGMENT exists for this supplement, you MUST include at least one augmentation fact that is not simply restating the CSV.",
    ]
)


class CoachLLMError(Exception):
    """Raised when the chat completions call fails or returns an unexpected shape."""


@dataclass
class CoachRequest:
    supplement_name: str
    fields: Dict[str, str]
    selected_goals: List[str] = field(default_factory=list)


@dataclass
class CoachTextResult:
    ok: bool
    text: str = ""
    reason: Optional[str] = None


def normalize_supplement_key(value: Any) -> str:
    """'Whey Protein' -> 'whey_protein' (lookup key for AUGMENT_RULES)."""
    s = re.sub(r"\s+", "_", str(value or "").lower())
    return re.sub(r"[^a-z0-9_]", "", s)


def goal_names(selected_goals: Iterable[Any]) -> List[str]:
    """Map goal keys to display names, dropping anything unknown."""
    out: List[str] = []
    for g in selected_goals or []:
        name = GOAL_NAMES.get(str(g or "").lower())
        if name:
            out.append(name)
    return out


def goals_from_flags(flag_cols: Iterable[str]) -> List[str]:
    """sleep_flag -> sleep; keeps only goals the coach knows about."""
    goals: List[str] = []
    for col in flag_cols:
        g = str(col).lower().replace("_flag", "", 1)
        if g in GOAL_NAMES:
            goals.append(g)
    return goals


def request_from_record(
    record: SupplementRecord,
    config: SearchConfig,
    selected_flags: Iterable[str] = (),
) -> CoachRequest:
    """Build the coaching request for one result card."""
    fields = {
        "supplement_key": record.key or normalize_supplement_key(record.pretty_key),
        "supplement_name": record.pretty_key,
        "level_of_evidence": record.evidence_level,
        "mechanisms": record.mechanism,
        "direct_cognitive_benefits": record.get(DIRECT_BENEFITS_COL),
        "indirect_cognitive_benefits": record.get(INDIRECT_BENEFITS_COL),
        "suggested_dosage": record.get(DOSAGE_COL),
        "potential_risks": record.get(RISKS_COL),
        "why_top_choice": record.get(WHY_TOP_CHOICE_COL),
    }
    return CoachRequest(
        supplement_name=record.pretty_key or "Unknown supplement",
        fields=fields,
        selected_goals=goals_from_flags(selected_flags),
    )


def build_chat_payload(request: CoachRequest, model: str = OPENAI_MODEL) -> Dict[str, Any]:
    """
    Chat completions body for one supplement.

    The user message is JSON holding the CSV fields, the mapped goals and
    any AUGMENT bullets for this supplement.
    """
    key = normalize_supplement_key(request.fields.get("supplement_key") or request.supplement_name)
    user = json.dumps(
        {
            "supplement_name": request.supplement_name,
            "goals": goal_names(request.selected_goals),
            "fields": {name: str(request.fields.get(name) or "") for name in PROMPT_FIELDS},
            "AUGMENT": AUGMENT_RULES.get(key, []),
        },
        ensure_ascii=False,
    )
    return {
        "model": model,
        "temperature": TEMPERATURE,
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": user},
        ],
    }


def _completions_retry() -> Retry:
    """
    One quick retry on rate limits and gateway errors; the UI will not wait
    longer than that.
    """
    return Retry(
        total=1,
        connect=1,
        read=0,
        status=1,
        backoff_factor=0.3,
        status_forcelist=(429, 502, 503, 504),
        allowed_methods=frozenset({"POST"}),
        raise_on_status=False,
    )


def _get_session() -> requests.Session:
    return get_session("chat_completions", _completions_retry)


def _post_chat_completion(payload: Dict[str, Any], api_key: str, url: str, timeout_seconds: int) -> str:
    try:
        resp = _get_session().post(
            url,
            headers={"authorization": f"Bearer {api_key}", "content-type": "application/json"},
            data=json.dumps(payload),
            timeout=timeout_seconds,
        )
    except requests.RequestException as exc:
        raise CoachLLMError(f"HTTP error while calling chat completions: {exc}") from exc

    if resp.status_code != 200:
        preview = (resp.text or "")[:200]
        raise CoachLLMError(f"Chat completions returned status={resp.status_code}. Preview: {preview}")

    try:
        data = resp.json()
    except ValueError as exc:
        raise CoachLLMError("Non-JSON response from chat completions") from exc

    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise CoachLLMError(f"Unexpected chat completions shape: {str(data)[:200]}") from exc

    return str(content or "").strip()


def generate_coaching_text(
    request: CoachRequest,
    *,
    api_key: Optional[str] = None,
    url: str = OPENAI_CHAT_COMPLETIONS_URL,
    model: str = OPENAI_MODEL,
    timeout_seconds: int = COACH_TIMEOUT_SECONDS,
) -> CoachTextResult:
    """
    Ask the language model for three short coaching paragraphs.

    Never raises for missing keys, bad input or API failures; the result's
    `reason` says why there is no text and the caller shows the CSV-only
    summary instead.
    """
    key = (api_key if api_key is not None else OPENAI_API_KEY).strip()
    if not key:
        return CoachTextResult(ok=False, reason=REASON_NO_API_KEY)

    if not request.supplement_name or not request.fields:
        return CoachTextResult(ok=False, reason=REASON_BAD_INPUT)

    payload = build_chat_payload(request, model=model)
    logger.info("Requesting coaching text for %s (goals=%s)", request.supplement_name, request.selected_goals)

    try:
        text = _post_chat_completion(payload, key, url, timeout_seconds)
    except CoachLLMError as exc:
        logger.warning("Coaching text unavailable for %s: %s", request.supplement_name, exc)
        return CoachTextResult(ok=False, reason=REASON_API_ERROR)

    if len(text) < MIN_TEXT_LENGTH:
        logger.warning("Coaching text for %s too short (%s chars).", request.supplement_name, len(text))
        return CoachTextResult(ok=False, reason=REASON_EMPTY)

    return CoachTextResult(ok=True, text=text)


def to_paragraphs(text: str) -> List[str]:
    """Split model output on blank lines. Empty output gives the fallback line."""
    blocks = [b.strip() for b in re.split(r"\n\s*\n", str(text or "").strip())]
    paragraphs = [b for b in blocks if b]
    return paragraphs or [FALLBACK_PARAGRAPH]
