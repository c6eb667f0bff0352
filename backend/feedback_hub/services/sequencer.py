"""Card/step sequencing and builder card mutations.

Two traversal roles exist:

- ``builder``: every non-system card is shown (admin-only cards appear but are
  locked for non-admin editors).
- ``delivery``: what a visitor walks through in the widget. System cards are
  rendered by the runtime itself, admin-only cards are hidden unless they are
  global sections, and cards without steps are skipped.

All functions are pure. Mutations return new card lists and never modify
their input.
"""

import uuid
from typing import Literal

from feedback_hub.core.exceptions import CardOperationError
from feedback_hub.services.survey_config import (
    clone_cards,
    is_admin_only_card,
    is_global_card,
    is_system_card,
    is_user_card,
    render_step,
    validate_step,
)

TraversalRole = Literal["builder", "delivery"]


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------


def is_visible(card: dict, role: TraversalRole) -> bool:
    """Whether ``card`` is a stop on the given traversal path."""
    if is_system_card(card):
        return False
    if role == "delivery":
        if is_admin_only_card(card) and not card.get("isGlobal"):
            return False
        if not card.get("steps"):
            return False
    return True


def next_visible_card(cards: list[dict], current_index: int, role: TraversalRole = "delivery") -> int | None:
    """Index of the next card to show after ``current_index``, or None when finished.

    Pass ``current_index=-1`` to get the first visible card.
    """
    for index in range(max(current_index + 1, 0), len(cards)):
        if is_visible(cards[index], role):
            return index
    return None


def first_visible_card(cards: list[dict], role: TraversalRole = "delivery") -> int | None:
    return next_visible_card(cards, -1, role)


def step_counter(cards: list[dict], current_index: int, role: TraversalRole = "builder") -> tuple[int, int]:
    """Return ``(n, m)`` for a "step n of m" label.

    ``m`` counts the non-system cards visible on the path; ``n`` counts those
    strictly before ``current_index`` plus one. A system card (floating
    button, feedback modal) sits before the first step, so it reports 0.
    Counting by position rather than by offset keeps the result correct when
    system cards are not contiguous at the front.
    """
    visible = [index for index, card in enumerate(cards) if is_visible(card, role)]
    total = len(visible)
    if not 0 <= current_index < len(cards):
        raise CardOperationError(f"Card index {current_index} out of range")
    if is_system_card(cards[current_index]):
        return 0, total
    before = sum(1 for index in visible if index < current_index)
    return before + 1, total


def build_delivery_plan(cards: list[dict]) -> list[dict]:
    """Ordered cards a visitor walks, with rendered steps and progress counters."""
    plan = []
    index = first_visible_card(cards, "delivery")
    while index is not None:
        card = cards[index]
        position, total = step_counter(cards, index, "delivery")
        plan.append(
            {
                "cardId": card.get("id"),
                "title": card.get("title") or "",
                "description": card.get("description") or "",
                "position": position,
                "total": total,
                "isLast": position == total,
                "steps": [render_step(step) for step in card.get("steps") or []],
            }
        )
        index = next_visible_card(cards, index, "delivery")
    return plan


# ---------------------------------------------------------------------------
# Builder mutations
# ---------------------------------------------------------------------------


def _check_index(cards: list[dict], index: int) -> dict:
    if not 0 <= index < len(cards):
        raise CardOperationError(f"Card index {index} out of range")
    return cards[index]


def _next_card_id(cards: list[dict]) -> int:
    numeric = [c["id"] for c in cards if isinstance(c.get("id"), int) and not isinstance(c.get("id"), bool)]
    return max(numeric, default=-1) + 1


def count_user_cards(cards: list[dict]) -> int:
    return sum(1 for card in cards if is_user_card(card))


def add_card(cards: list[dict]) -> tuple[list[dict], int]:
    """Insert a new user card before the trailing admin-only outro card.

    Returns the new card list and the index of the inserted card.
    """
    number = count_user_cards(cards) + 1
    new_card = {
        "id": _next_card_id(cards),
        "title": f"Krok {number}",
        "description": f"Uživatelská sekce {number}",
        "isAdminOnly": False,
        "isEditable": True,
        "steps": [],
    }
    updated = clone_cards(cards)
    insert_at = len(updated) - 1 if updated and is_admin_only_card(updated[-1]) else len(updated)
    updated.insert(insert_at, new_card)
    return updated, insert_at


def can_delete_card(cards: list[dict], index: int) -> bool:
    card = cards[index]
    return is_user_card(card) and count_user_cards(cards) > 1


def delete_card(cards: list[dict], index: int, active_index: int = 0) -> tuple[list[dict], int]:
    """Remove a user card and re-clamp the active-card pointer.

    Returns ``(cards, active_index)``; the pointer keeps referencing the same
    logical card when possible.
    """
    card = _check_index(cards, index)
    if is_system_card(card):
        raise CardOperationError("System cards cannot be deleted")
    if is_admin_only_card(card):
        raise CardOperationError("Admin-only cards cannot be deleted")
    if not can_delete_card(cards, index):
        raise CardOperationError("A survey must keep at least one user card")

    updated = clone_cards(cards)
    del updated[index]

    if active_index == index:
        new_active = index - 1 if index > 0 else 0
    elif active_index > index:
        new_active = active_index - 1
    else:
        new_active = active_index
    new_active = min(max(new_active, 0), len(updated) - 1)
    return updated, new_active


def _check_editable(card: dict, is_admin: bool) -> None:
    if is_system_card(card):
        raise CardOperationError("System cards are not editable")
    if is_global_card(card):
        raise CardOperationError(
            f"'{card.get('title')}' is a global section shared by every survey; "
            "edit it through the global sections editor"
        )
    if is_admin_only_card(card) and not is_admin:
        raise CardOperationError("This section can only be edited by an administrator")


def rename_card(cards: list[dict], index: int, title: str, *, is_admin: bool = False) -> list[dict]:
    card = _check_index(cards, index)
    if is_system_card(card):
        raise CardOperationError("System cards cannot be renamed")
    if is_admin_only_card(card) and not is_admin:
        raise CardOperationError("This section can only be edited by an administrator")
    if not title or not title.strip():
        raise CardOperationError("Card title cannot be empty")

    updated = clone_cards(cards)
    updated[index]["title"] = title.strip()
    return updated


def add_step(cards: list[dict], index: int, step: dict, *, is_admin: bool = False) -> tuple[list[dict], dict]:
    """Append a validated step to a card. Returns the new cards and the stored step."""
    card = _check_index(cards, index)
    _check_editable(card, is_admin)

    new_step = dict(step)
    if not new_step.get("id"):
        new_step["id"] = f"step-{uuid.uuid4().hex[:8]}"
    new_step.setdefault("required", True)

    errors = validate_step(new_step)
    if errors:
        raise CardOperationError("Invalid step definition", details=errors)

    existing_ids = {str(s.get("id")) for c in cards for s in c.get("steps") or []}
    if str(new_step["id"]) in existing_ids:
        raise CardOperationError(f"Step id '{new_step['id']}' is already used in this survey")

    updated = clone_cards(cards)
    updated[index].setdefault("steps", []).append(new_step)
    return updated, new_step
