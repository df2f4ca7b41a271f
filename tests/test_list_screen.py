from datetime import date
from types import SimpleNamespace

import pytest

from mynotes.records import CardFilter, FinanceEntry, Flashcard, ViewMode
from mynotes.view import ListScreen


def _screen(controller, mode: ViewMode):
    controller.set_view(mode)
    screen = SimpleNamespace(
        controller=controller,
        mode=mode,
        card_filter=CardFilter.ALL,
        card_collection=None,
        finance_category_idx=0,
        refreshed=0,
    )
    screen.refresh_list = lambda: setattr(screen, "refreshed", screen.refreshed + 1)
    screen._filtered_cards = lambda: ListScreen._filtered_cards(screen)
    screen._finance_summary = lambda: ListScreen._finance_summary(screen)
    screen._card_hidden = lambda: ListScreen._card_hidden(screen)
    return screen


def _cards():
    return [
        Flashcard(front="uno", back="one", collection="Spanish"),
        Flashcard(front="deux", back="two", collection="French"),
        Flashcard(front="dos", back="two", collection="Spanish"),
    ]


@pytest.mark.unit
def test_finance_title_cycles_categories(frozen_time, test_controller):
    test_controller.snapshot.finances = [
        FinanceEntry(date=date(2025, 1, 2), category="Rent", amount=900),
        FinanceEntry(date=date(2025, 1, 5), category="Food", amount=25.5),
    ]
    screen = _screen(test_controller, ViewMode.FINANCE)
    assert ListScreen._title(screen) == "Finance  All: 01/2025 925.50  year 925.50"

    ListScreen.action_filter(screen)
    assert ListScreen._title(screen) == "Finance  Food: 01/2025 25.50  year 25.50"
    ListScreen.action_filter(screen)
    ListScreen.action_filter(screen)
    assert ListScreen._title(screen).startswith("Finance  All:")
    assert screen.refreshed == 3


@pytest.mark.unit
def test_flashcard_rows_follow_the_filter(frozen_time, test_controller):
    test_controller.snapshot.cards = _cards()
    test_controller.snapshot.current_card_idx = 2
    screen = _screen(test_controller, ViewMode.FLASHCARDS)
    screen.card_filter, screen.card_collection = CardFilter.COLLECTION, "Spanish"

    rows, current = ListScreen._rows(screen)
    assert [row.split()[0] for row in rows] == ["uno", "dos"]
    assert current == 1
    assert "Filter: Spanish" in ListScreen._title(screen)

    test_controller.snapshot.current_card_idx = 1
    assert ListScreen._card_hidden(screen)
    assert ListScreen._rows(screen)[1] == -1


@pytest.mark.unit
def test_bulk_delete_needs_a_filter(frozen_time, test_controller):
    test_controller.snapshot.cards = _cards()
    screen = _screen(test_controller, ViewMode.FLASHCARDS)

    ListScreen.action_bulk_delete(screen)
    assert len(test_controller.snapshot.cards) == 3

    screen.card_filter, screen.card_collection = CardFilter.COLLECTION, "Spanish"
    ListScreen.action_bulk_delete(screen)
    assert [c.front for c in test_controller.snapshot.cards] == ["deux"]
    assert test_controller.status_message == "Deleted 2 card(s)"


@pytest.mark.unit
def test_disassociate_filtered_cards(frozen_time, test_controller):
    test_controller.snapshot.cards = _cards()
    screen = _screen(test_controller, ViewMode.FLASHCARDS)
    screen.card_filter, screen.card_collection = CardFilter.COLLECTION, "Spanish"

    ListScreen.action_disassociate(screen)
    assert [c.collection for c in test_controller.snapshot.cards] == [None, "French", None]
    assert (screen.card_filter, screen.card_collection) == (CardFilter.ALL, None)

    test_controller.snapshot.current_card_idx = 1
    ListScreen.action_disassociate(screen)
    assert test_controller.collections() == []
