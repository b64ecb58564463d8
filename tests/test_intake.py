"""
Tests for the order intake screen: free tables and the pre-order form.
"""
import pytest

from warmindo_order.errors import BackendError, ValidationFailed
from warmindo_order.schemas.cart import PreOrderIn
from warmindo_order.services.intake import NO_FREE_TABLES, IntakeController


@pytest.fixture
def intake(backend, pre_orders):
    return IntakeController(backend, pre_orders)


class TestFreeTables:
    def test_direct_select_is_used_when_it_returns_rows(self, backend, intake):
        backend.tables = [
            {"label": "B2", "status": "empty", "capacity": 2},
            {"label": "A1", "status": "empty", "capacity": 4},
            {"label": "C3", "status": "occupied", "capacity": 6},
        ]

        result = intake.load_free_tables()

        assert [t.label for t in result.tables] == ["A1", "B2"]
        assert result.tables[0].display == "Meja A1 · 4 org"
        assert result.notices == []
        assert backend.call_count("get_free_tables") == 0

    def test_falls_back_to_server_function_when_select_is_empty(self, backend, intake):
        backend.free_tables = [{"table_no": "D4", "cap": 2}]

        result = intake.load_free_tables()

        assert [t.label for t in result.tables] == ["D4"]
        assert result.tables[0].capacity == 2
        assert backend.call_count("get_free_tables") == 1

    def test_no_tables_anywhere_shows_notice(self, backend, intake):
        result = intake.load_free_tables()

        assert result.tables == []
        assert result.notices[0].level == "warning"
        assert result.notices[0].message == NO_FREE_TABLES

    def test_server_function_failure_is_treated_as_empty(self, backend, intake):
        backend.fail["get_free_tables"] = BackendError("boom", code="PGRST202")

        result = intake.load_free_tables()

        assert result.tables == []
        assert result.notices[0].message == NO_FREE_TABLES

    def test_rate_limited_select_is_retried_once(self, backend, intake):
        backend.tables = [{"label": "A1", "status": "empty", "capacity": 4}]
        backend.fail["list_empty_tables"] = [BackendError("slow down", code="429")]

        result = intake.load_free_tables()

        assert [t.label for t in result.tables] == ["A1"]
        assert backend.call_count("list_empty_tables") == 2

    def test_table_without_capacity(self, backend, intake):
        backend.tables = [{"label": "A1", "status": "empty", "capacity": None}]
        assert intake.load_free_tables().tables[0].display == "Meja A1"


class TestSubmit:
    def test_dine_in_with_table_is_saved(self, intake, pre_orders):
        result = intake.submit(PreOrderIn(guest_name="  Sari ", contact="", service_type="dine_in", table_no="A1"))

        saved = pre_orders.load()
        assert saved.guest_name == "Sari"
        assert saved.table_no == "A1"
        assert result.redirect == "menu"
        assert result.notices[0].level == "success"

    def test_takeaway_drops_table(self, intake, pre_orders):
        intake.submit(PreOrderIn(guest_name="", contact="0812", service_type="takeaway", table_no="A1"))

        saved = pre_orders.load()
        assert saved.service_type == "takeaway"
        assert saved.table_no == ""
        assert saved.contact == "0812"

    def test_name_or_contact_required(self, intake, pre_orders):
        with pytest.raises(ValidationFailed) as exc_info:
            intake.submit(PreOrderIn(guest_name="  ", contact="", service_type="takeaway"))
        assert exc_info.value.field == "guest_name"
        assert pre_orders.load() is None

    def test_dine_in_requires_table(self, intake, pre_orders):
        with pytest.raises(ValidationFailed) as exc_info:
            intake.submit(PreOrderIn(guest_name="Sari", service_type="dine_in", table_no=" "))
        assert exc_info.value.field == "table_no"
        assert pre_orders.load() is None

    def test_unknown_service_type(self, intake):
        with pytest.raises(ValidationFailed) as exc_info:
            intake.submit(PreOrderIn(guest_name="Sari", service_type="delivery"))
        assert exc_info.value.field == "service_type"

    def test_validation_makes_no_backend_calls(self, backend, intake):
        with pytest.raises(ValidationFailed):
            intake.submit(PreOrderIn(service_type="takeaway"))
        assert backend.calls == []


def test_current_reports_saved_pre_order(intake, saved_pre_order):
    current = intake.current()
    assert current.guest_name == "Sari"
    assert current.service_label == "Makan di Tempat"


def test_current_without_pre_order(intake):
    assert intake.current().service_type is None
