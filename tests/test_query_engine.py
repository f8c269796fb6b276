# tests/test_query_engine.py
import copy
from datetime import date, timedelta

import pytest

from src.config import SLAStatus, SortDirection, TicketPriority, TicketStatus
from src.tickets.domain import TicketFilter, TicketSort, query_tickets

from tests.conftest import NOW, make_ticket


@pytest.fixture
def tickets():
    return [
        make_ticket(
            id="t-1", minutes_ago=300, title="VPN drops every hour",
            priority=TicketPriority.HIGH, category="network",
            assigned_to_id="u-bob", created_by_id="u-alice",
        ),
        make_ticket(
            id="t-2", minutes_ago=200, title="Laptop battery swollen",
            status=TicketStatus.IN_PROGRESS, priority=TicketPriority.URGENT,
            category="hardware", assigned_to_id="u-carol", created_by_id="u-bob",
            customer_email="ops@client.example",
        ),
        make_ticket(
            id="t-3", minutes_ago=100, title="Reset password",
            status=TicketStatus.RESOLVED, priority=TicketPriority.LOW,
            created_by_id="u-carol",
        ),
        make_ticket(
            id="t-4", minutes_ago=10, title="New monitor request",
            category="hardware", created_by_id="u-bob",
        ),
    ]


def ids(result):
    return [item.ticket.id for item in result]


def test_no_filters_returns_everything_newest_first(tickets):
    result = query_tickets(tickets, now=NOW)

    assert ids(result) == ["t-4", "t-3", "t-2", "t-1"]


def test_results_carry_sla_fields(tickets):
    result = {item.ticket.id: item for item in query_tickets(tickets, now=NOW)}

    # 300 of 240 minutes used
    assert result["t-1"].sla_status == SLAStatus.RED
    assert result["t-1"].sla_time_remaining == 0
    # 200 >= 180 warning threshold
    assert result["t-2"].sla_status == SLAStatus.YELLOW
    assert result["t-2"].sla_time_remaining == 40
    assert result["t-3"].sla_status == SLAStatus.GREEN
    assert result["t-4"].sla_time_remaining == 230


def test_empty_string_filters_are_ignored(tickets):
    result = query_tickets(tickets, TicketFilter(status="", search="", team_id=""), now=NOW)

    assert len(result) == 4


def test_filters_are_conjunctive(tickets):
    filters = TicketFilter(category="hardware", created_by_id="u-bob", status="open")

    result = query_tickets(tickets, filters, now=NOW)

    assert ids(result) == ["t-4"]


def test_enum_and_string_filter_values_are_equivalent(tickets):
    by_enum = query_tickets(tickets, TicketFilter(priority=TicketPriority.URGENT), now=NOW)
    by_string = query_tickets(tickets, TicketFilter(priority="urgent"), now=NOW)

    assert ids(by_enum) == ids(by_string) == ["t-2"]


def test_unknown_status_matches_nothing(tickets):
    assert query_tickets(tickets, TicketFilter(status="archived"), now=NOW) == []


def test_team_filter_matches_assignee_or_creator(tickets, directory):
    result = query_tickets(tickets, TicketFilter(team_id="t-product"), now=NOW, directory=directory)

    # t-1 is assigned to bob, t-2 and t-4 are created by bob
    assert ids(result) == ["t-4", "t-2", "t-1"]


def test_country_filter(tickets, directory):
    result = query_tickets(tickets, TicketFilter(country="UK"), now=NOW, directory=directory)

    assert ids(result) == ["t-3", "t-2"]


def test_team_filter_without_directory_matches_nothing(tickets):
    assert query_tickets(tickets, TicketFilter(team_id="t-support"), now=NOW) == []


def test_search_is_case_insensitive_across_fields(tickets, directory):
    def search(term):
        return ids(query_tickets(tickets, TicketFilter(search=term), now=NOW, directory=directory))

    assert search("vpn") == ["t-1"]
    assert search("CLIENT.example") == ["t-2"]
    # creator email
    assert search("carol@") == ["t-3"]


def test_date_range_is_inclusive(tickets):
    start = NOW - timedelta(minutes=200)
    end = NOW - timedelta(minutes=100)

    result = query_tickets(tickets, TicketFilter(start_date=start, end_date=end), now=NOW)

    assert ids(result) == ["t-3", "t-2"]


def test_date_bounds_accept_iso_strings_and_dates(tickets):
    start = (NOW - timedelta(minutes=150)).isoformat().replace("+00:00", "Z")

    assert ids(query_tickets(tickets, TicketFilter(start_date=start), now=NOW)) == ["t-4", "t-3"]
    assert query_tickets(tickets, TicketFilter(end_date=date(2024, 9, 30)), now=NOW) == []


def test_malformed_date_matches_nothing(tickets):
    assert query_tickets(tickets, TicketFilter(start_date="not-a-date"), now=NOW) == []


def test_sla_status_filter(tickets):
    result = query_tickets(tickets, TicketFilter(sla_status="RED"), now=NOW)

    assert ids(result) == ["t-1"]


def test_sort_by_priority_uses_rank(tickets):
    result = query_tickets(tickets, sort=TicketSort("priority", SortDirection.DESC), now=NOW)

    assert [item.ticket.priority for item in result] == [
        TicketPriority.URGENT, TicketPriority.HIGH,
        TicketPriority.MEDIUM, TicketPriority.LOW,
    ]


def test_missing_values_sort_last_in_both_directions(tickets):
    for direction in ("ASC", "DESC"):
        result = query_tickets(tickets, sort=TicketSort.parse("category", direction), now=NOW)
        assert result[-1].ticket.id == "t-3"


def test_sort_ties_keep_input_order(tickets):
    result = query_tickets(tickets, sort=TicketSort.parse("slaMinutes", "asc"), now=NOW)

    assert ids(result) == ["t-1", "t-2", "t-3", "t-4"]


@pytest.mark.parametrize("sort_by, sort_order, expected", [
    ("createdAt", "ASC", TicketSort("created_at", SortDirection.ASC)),
    ("sla_time_remaining", "asc", TicketSort("sla_time_remaining", SortDirection.ASC)),
    ("passwordHash", "DESC", TicketSort("created_at", SortDirection.DESC)),
    (None, "sideways", TicketSort("created_at", SortDirection.DESC)),
])
def test_sort_parse(sort_by, sort_order, expected):
    assert TicketSort.parse(sort_by, sort_order) == expected


def test_input_collection_is_not_mutated(tickets):
    snapshot = copy.deepcopy(tickets)

    query_tickets(tickets, TicketFilter(category="hardware"), TicketSort.parse("title", "ASC"), now=NOW)

    assert tickets == snapshot


def test_status_and_priority_combined(tickets):
    result = query_tickets(tickets, TicketFilter(status="open", priority="high"), now=NOW)

    assert ids(result) == ["t-1"]


@pytest.mark.parametrize("first, second", [
    ({"status": "open"}, {"priority": "high"}),
    ({"team_id": "t-product"}, {"category": "hardware"}),
    ({"created_by_id": "u-bob"}, {"status": "open"}),
    ({"country": "UK"}, {"priority": "urgent"}),
    ({"sla_status": "GREEN"}, {"category": "hardware"}),
    ({"assigned_to_id": "u-bob"}, {"team_id": "t-product"}),
    ({"search": "laptop"}, {"country": "CA"}),
])
def test_combined_filters_equal_filters_applied_in_turn(tickets, directory, first, second):
    step = query_tickets(tickets, TicketFilter(**first), now=NOW, directory=directory)
    in_turn = query_tickets(
        [item.ticket for item in step], TicketFilter(**second), now=NOW, directory=directory
    )

    combined = query_tickets(tickets, TicketFilter(**first, **second), now=NOW, directory=directory)

    assert ids(combined) == ids(in_turn)
    assert combined


@pytest.mark.parametrize("filters", [
    TicketFilter(team_id=["t-support"]),
    TicketFilter(country={"UK": True}),
    TicketFilter(status=["open"]),
])
def test_unhashable_filter_values_match_nothing(tickets, directory, filters):
    assert query_tickets(tickets, filters, now=NOW, directory=directory) == []
