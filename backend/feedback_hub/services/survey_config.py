"""Survey configuration model: step types, validation and view-agnostic rendering.

A survey config is a plain JSON dict ``{"cards": [card, ...]}``. Cards and
steps keep the camelCase keys the widget runtime reads (``isAdminOnly``,
``conditionalTriggers``...). Everything in this module is pure: no database,
no settings lookups beyond the ``strict`` flag passed in by callers.
"""

import copy
from dataclasses import dataclass, field
from typing import Any

from feedback_hub.core.exceptions import ValidationError

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

STEP_SMILEY = "smiley"
STEP_SINGLE_CHOICE = "single-choice"
STEP_MULTISELECT = "dropdown-multiselect"
STEP_TEXT = "text"
STEP_SECTION_HEADER = "section-header"
STEP_FLOATING_WIDGET = "floating-widget"
STEP_FEEDBACK_MODAL = "feedback-modal"

USER_STEP_TYPES = (
    STEP_SMILEY,
    STEP_SINGLE_CHOICE,
    STEP_MULTISELECT,
    STEP_TEXT,
    STEP_SECTION_HEADER,
)
SYSTEM_STEP_TYPES = (STEP_FLOATING_WIDGET, STEP_FEEDBACK_MODAL)
STEP_TYPES = USER_STEP_TYPES + SYSTEM_STEP_TYPES

CHOICE_STEP_TYPES = frozenset({STEP_SINGLE_CHOICE, STEP_MULTISELECT})

# Smiley scale, best to worst. Index is what the widget submits.
EMOJI_LABELS = ("Very Happy", "Happy", "Neutral", "Sad", "Very Sad")

# Card ids fixed by convention
FLOATING_WIDGET_CARD_ID = 0
FEEDBACK_MODAL_CARD_ID = 1
INTRO_CARD_ID = 2
MAIN_CARD_ID = 3
OUTRO_CARD_ID = 4
GLOBAL_CARD_IDS = frozenset({INTRO_CARD_ID, OUTRO_CARD_ID})

DEFAULT_TRIGGER_LABEL = "Nepovinné pole"
DEFAULT_TRIGGER_PLACEHOLDER = "Prosím, okomentujte"
DEFAULT_SMILEY_PLACEHOLDER = "Prosím, okomentujte vaše hodnocení"

_REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
    STEP_SMILEY: ("id", "type", "question"),
    STEP_SINGLE_CHOICE: ("id", "type", "question", "options"),
    STEP_MULTISELECT: ("id", "type", "question", "options"),
    STEP_TEXT: ("id", "type", "question"),
    STEP_SECTION_HEADER: ("id", "type", "question"),
    STEP_FLOATING_WIDGET: ("id", "type"),
    STEP_FEEDBACK_MODAL: ("id", "type"),
}

_STEP_KINDS = {
    STEP_SMILEY: "rating",
    STEP_SINGLE_CHOICE: "choice",
    STEP_MULTISELECT: "multi",
    STEP_TEXT: "text",
    STEP_SECTION_HEADER: "header",
    STEP_FLOATING_WIDGET: "system",
    STEP_FEEDBACK_MODAL: "system",
}


# ---------------------------------------------------------------------------
# Default config
# ---------------------------------------------------------------------------


def _system_card(card_id: int, title: str, description: str, step_type: str) -> dict[str, Any]:
    return {
        "id": card_id,
        "title": title,
        "description": description,
        "isAdminOnly": False,
        "isEditable": False,
        "isSystem": True,
        "steps": [
            {
                "id": step_type,
                "type": step_type,
                "question": description,
                "isSystem": True,
                "uneditable": True,
            }
        ],
    }


def default_survey_config() -> dict[str, Any]:
    """Return the card layout every new survey starts from."""
    return {
        "cards": [
            _system_card(
                FLOATING_WIDGET_CARD_ID,
                "Floating Widget",
                "Floating feedback widget",
                STEP_FLOATING_WIDGET,
            ),
            _system_card(
                FEEDBACK_MODAL_CARD_ID,
                "Feedback Modal",
                "Feedback options",
                STEP_FEEDBACK_MODAL,
            ),
            {
                "id": INTRO_CARD_ID,
                "title": "Úvodní sekce",
                "description": "Systémová úvodní část (pouze admin)",
                "isAdminOnly": True,
                "isEditable": False,
                "steps": [],
            },
            {
                "id": MAIN_CARD_ID,
                "title": "Hlavní obsah",
                "description": "Editovatelná část pro uživatele",
                "isAdminOnly": False,
                "isEditable": True,
                "steps": [],
            },
            {
                "id": OUTRO_CARD_ID,
                "title": "Závěrečná sekce",
                "description": "Systémová závěrečná část (pouze admin)",
                "isAdminOnly": True,
                "isEditable": False,
                "steps": [],
            },
        ]
    }


# ---------------------------------------------------------------------------
# Card predicates
# ---------------------------------------------------------------------------


def is_system_card(card: dict) -> bool:
    return bool(card.get("isSystem"))


def is_admin_only_card(card: dict) -> bool:
    return bool(card.get("isAdminOnly"))


def is_global_card(card: dict) -> bool:
    return bool(card.get("isGlobal")) or card.get("id") in GLOBAL_CARD_IDS


def is_user_card(card: dict) -> bool:
    """A card a regular editor owns: neither admin-only nor system."""
    return not is_admin_only_card(card) and not is_system_card(card)


def find_step(cards: list[dict], step_id: str) -> dict | None:
    for card in cards:
        for step in card.get("steps") or []:
            if isinstance(step, dict) and str(step.get("id")) == step_id:
                return step
    return None


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass
class ConfigValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def required_fields(step_type: str) -> tuple[str, ...]:
    """Names of the fields a step of ``step_type`` must carry."""
    try:
        return _REQUIRED_FIELDS[step_type]
    except KeyError:
        raise ValidationError(f"Unknown step type: {step_type}") from None


def _trigger_problems(step: dict, label: str) -> list[str]:
    problems: list[str] = []
    options = step.get("options") or []
    for trigger in step.get("conditionalTriggers") or []:
        if not isinstance(trigger, dict):
            problems.append(f"{label}: conditional trigger must be an object")
            continue
        index = trigger.get("optionIndex")
        if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < len(options):
            problems.append(f"{label}: conditional trigger references missing option index {index!r}")
            continue
        expected = trigger.get("optionText")
        if expected is not None and options[index] != expected:
            problems.append(
                f"{label}: conditional trigger for option {index} expects '{expected}' "
                f"but the option is now '{options[index]}'"
            )
    return problems


def _check_step(step: Any, label: str, result: ConfigValidationResult, strict: bool) -> None:
    if not isinstance(step, dict):
        result.errors.append(f"{label}: step must be an object")
        return

    step_type = step.get("type")
    if step_type not in STEP_TYPES:
        result.errors.append(f"{label}: unknown step type {step_type!r}")
        return

    if step.get("id") in (None, ""):
        result.errors.append(f"{label}: step id is required")

    if step_type in CHOICE_STEP_TYPES:
        options = step.get("options")
        if not isinstance(options, list) or not options:
            result.errors.append(f"{label}: {step_type} requires at least one option")
            return

    if step_type in USER_STEP_TYPES and not str(step.get("question") or "").strip():
        result.warnings.append(f"{label}: question text is empty")

    trigger_problems = _trigger_problems(step, label)
    if strict:
        result.errors.extend(trigger_problems)
    else:
        result.warnings.extend(trigger_problems)


def validate_step(step: Any, *, strict: bool = True) -> list[str]:
    """Validate a single step definition, as the step editor does before saving.

    Unlike the whole-config check, a blank question is an error here.
    """
    result = ConfigValidationResult()
    _check_step(step, "Step", result, strict)
    if isinstance(step, dict) and step.get("type") in STEP_TYPES:
        for name in required_fields(step["type"]):
            value = step.get(name)
            if value is None or (isinstance(value, str) and not value.strip()):
                result.errors.append(f"Step: field '{name}' is required for {step['type']}")
    return result.errors


def validate_survey_config(config: Any, *, strict: bool = False) -> ConfigValidationResult:
    """Check a survey config without touching it.

    Errors: missing/empty ``cards``, malformed cards or steps, choice steps
    without options. Conditional triggers pointing at a missing or renamed
    option are warnings unless ``strict`` is set.
    """
    result = ConfigValidationResult()

    if not isinstance(config, dict):
        result.errors.append("Config must be an object")
        return result

    cards = config.get("cards")
    if not isinstance(cards, list) or not cards:
        result.errors.append("Config must contain a non-empty cards array")
        return result

    seen_ids: set = set()
    for card_index, card in enumerate(cards):
        card_label = f"Card {card_index}"
        if not isinstance(card, dict):
            result.errors.append(f"{card_label}: card must be an object")
            continue

        card_id = card.get("id")
        if card_id is None or isinstance(card_id, bool):
            result.errors.append(f"{card_label}: card id is required")
        elif card_id in seen_ids:
            result.errors.append(f"{card_label}: duplicate card id {card_id!r}")
        else:
            seen_ids.add(card_id)

        steps = card.get("steps", [])
        if not isinstance(steps, list):
            result.errors.append(f"{card_label}: steps must be an array")
            continue

        for step_index, step in enumerate(steps):
            _check_step(step, f"{card_label}, step {step_index}", result, strict)

    return result


def ensure_valid_survey_config(config: Any, *, strict: bool = False) -> list[str]:
    """Raise ValidationError on errors, otherwise return the warnings."""
    result = validate_survey_config(config, strict=strict)
    if not result.is_valid:
        raise ValidationError("Invalid survey configuration", details=result.errors)
    return result.warnings


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _render_trigger(trigger: dict, answer_key: str) -> dict[str, Any]:
    return {
        "answerKey": answer_key,
        "label": trigger.get("textboxLabel") or DEFAULT_TRIGGER_LABEL,
        "placeholder": trigger.get("textboxPlaceholder") or DEFAULT_TRIGGER_PLACEHOLDER,
    }


def render_step(step: dict) -> dict[str, Any]:
    """Produce a view-agnostic description of a step.

    The widget runtime only ever reads this shape; it never inspects raw step
    definitions.
    """
    step_type = step.get("type")
    kind = _STEP_KINDS.get(step_type)
    if kind is None:
        raise ValidationError(f"Unknown step type: {step_type}")

    triggers = {
        t["optionIndex"]: t
        for t in step.get("conditionalTriggers") or []
        if isinstance(t, dict)
        and isinstance(t.get("optionIndex"), int)
        and not isinstance(t.get("optionIndex"), bool)
    }

    options = []
    if step_type in CHOICE_STEP_TYPES:
        for index, text in enumerate(step.get("options") or []):
            trigger = triggers.get(index)
            options.append(
                {
                    "index": index,
                    "text": text,
                    "trigger": _render_trigger(trigger, f"{step.get('id')}-option-{index}") if trigger else None,
                }
            )

    textbox = None
    if step_type == STEP_SMILEY and step.get("hasTextbox"):
        textbox = {
            "label": "",
            "placeholder": step.get("textboxPlaceholder") or DEFAULT_SMILEY_PLACEHOLDER,
        }

    return {
        "id": str(step.get("id")),
        "type": step_type,
        "kind": kind,
        "question": step.get("question") or "",
        "required": bool(step.get("required", True)) and kind not in ("header", "system"),
        "options": options,
        "textbox": textbox,
        "scale": list(EMOJI_LABELS) if step_type == STEP_SMILEY else [],
    }


def clone_cards(cards: list[dict]) -> list[dict]:
    return copy.deepcopy(cards)
