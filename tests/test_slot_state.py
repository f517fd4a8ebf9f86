"""Tests for SlotState merging, serialization and the completion check."""

from itertools import combinations

import pytest

from services.conversation.slot_state import REQUIRED_FIELDS, SlotState, is_complete


VALUES = {
    "customer_name": "Anna Schmidt",
    "phone_number": "0171 1234567",
    "service_type": "Heizung",
    "address": "Hauptstraße 12",
}


class TestIsComplete:
    def test_all_required_present(self, complete_state):
        assert is_complete(complete_state) is True

    @pytest.mark.parametrize("size", range(len(REQUIRED_FIELDS)))
    def test_every_strict_subset_is_incomplete(self, size):
        for subset in combinations(REQUIRED_FIELDS, size):
            state = SlotState(**{name: VALUES[name] for name in subset})
            assert is_complete(state) is False, subset

    @pytest.mark.parametrize("field_name", REQUIRED_FIELDS)
    def test_blank_value_does_not_count(self, complete_state, field_name):
        setattr(complete_state, field_name, "   ")
        assert is_complete(complete_state) is False

    def test_optional_fields_not_required(self, complete_state):
        assert complete_state.preferred_date is None
        assert is_complete(complete_state) is True

    def test_non_state_input_is_incomplete(self):
        assert is_complete(None) is False
        assert is_complete({"customerName": "Anna"}) is False


class TestMerge:
    def test_last_write_wins(self):
        merged = SlotState(customer_name="Anna").merge(SlotState(customer_name="Berta"))
        assert merged.customer_name == "Berta"

    def test_none_never_clears(self, complete_state):
        merged = complete_state.merge(SlotState())
        assert merged == complete_state

    def test_appointment_flag_only_set(self):
        booked = SlotState(appointment_complete=True, appointment_id="apt-1")
        merged = booked.merge(SlotState(appointment_complete=False))
        assert merged.appointment_complete is True
        assert merged.appointment_id == "apt-1"

    def test_merge_returns_new_object(self):
        base = SlotState()
        merged = base.merge(SlotState(address="Hauptstraße 12"))
        assert base.address is None
        assert merged is not base


class TestSerialization:
    def test_wire_keys(self, complete_state):
        data = complete_state.to_dict()
        assert data["customerName"] == "Anna Schmidt"
        assert data["phoneNumber"] == "0171 1234567"
        assert data["serviceType"] == "Heizung"
        assert data["address"] == "Hauptstraße 12"
        assert data["appointmentComplete"] is False
        assert data["appointmentId"] is None
        assert "customer_name" not in data

    def test_missing_fields(self):
        state = SlotState(customer_name="Anna", address="Hauptstraße 12")
        assert state.missing_fields() == ["phone_number", "service_type"]
