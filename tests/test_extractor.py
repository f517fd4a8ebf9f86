"""Tests for the pattern-based appointment info extractor."""

import pytest

from services.conversation.extractor import extract_appointment_info
from services.conversation.slot_state import SlotState, is_complete


class TestScenarios:
    def test_name_from_english_introduction(self):
        state = extract_appointment_info("My name is Anna Schmidt", SlotState())
        assert state.customer_name == "Anna Schmidt"
        assert is_complete(state) is False

    def test_emergency_heater(self):
        state = extract_appointment_info("It's an emergency, my heater is broken", SlotState())
        assert state.urgency == "urgent"
        assert state.service_type == "Heating"
        assert is_complete(state) is False

    def test_full_german_utterance_completes(self):
        text = (
            "Mein Name ist Peter Müller, meine Nummer ist 0171 1234567, "
            "die Heizung ist kaputt, ich wohne in der Hauptstraße 12."
        )
        state = extract_appointment_info(text, SlotState())
        assert state.customer_name == "Peter Müller"
        assert state.phone_number == "0171 1234567"
        assert state.service_type == "Heizung"
        assert state.address == "Hauptstraße 12"
        assert is_complete(state) is True


class TestName:
    @pytest.mark.parametrize("text,expected", [
        ("Ich heiße Klaus", "Klaus"),
        ("ich bin Maria Weber", "Maria Weber"),
        ("Hi, I'm Tom", "Tom"),
        ("this is Sarah Connor speaking", "Sarah Connor"),
    ])
    def test_introductions(self, text, expected):
        assert extract_appointment_info(text, SlotState()).customer_name == expected

    def test_lowercase_word_is_not_a_name(self):
        assert extract_appointment_info("ich bin etwas spät dran", SlotState()).customer_name is None

    @pytest.mark.parametrize("text", [
        "Ich bin Montag leider nicht zu Hause",
        "Ich bin Mieter in der Wohnung",
        "This is Tomorrow then?",
    ])
    def test_weekdays_and_roles_keep_existing_name(self, text, complete_state):
        assert extract_appointment_info(text, complete_state).customer_name == "Anna Schmidt"

    def test_name_after_rejected_word(self):
        text = "Ich bin Mieter hier, mein Name ist Jonas Berg"
        assert extract_appointment_info(text, SlotState()).customer_name == "Jonas Berg"


class TestPhone:
    @pytest.mark.parametrize("text,expected", [
        ("Meine Nummer ist 0171 1234567", "0171 1234567"),
        ("call me on +49 30 1234567", "+49 30 1234567"),
        ("Rückruf unter 030/123456", "030/123456"),
    ])
    def test_numbers(self, text, expected):
        assert extract_appointment_info(text, SlotState()).phone_number == expected

    def test_short_digit_runs_ignored(self):
        assert extract_appointment_info("Hausnummer 012", SlotState()).phone_number is None


class TestServiceAndUrgency:
    def test_trade_category_wins_over_generic(self):
        state = extract_appointment_info("Reparatur der Heizung bitte", SlotState())
        assert state.service_type == "Heizung"

    def test_description_captured_once(self):
        state = extract_appointment_info("Die Heizung ist kaputt", SlotState())
        assert state.description == "Die Heizung ist kaputt"

        state = extract_appointment_info("Auch eine Wartung bitte", state)
        assert state.service_type == "Wartung"
        assert state.description == "Die Heizung ist kaputt"

    def test_high_urgency(self):
        assert extract_appointment_info("Es eilt ein wenig", SlotState()).urgency == "high"

    @pytest.mark.parametrize("text", [
        "Wie ich schon mitteilte, tropft es",
        "Das Zimmer ist geteilt",
    ])
    def test_urgency_keywords_match_whole_words(self, text):
        assert extract_appointment_info(text, SlotState()).urgency is None

    def test_inflected_urgent_keyword(self):
        assert extract_appointment_info("Eine dringende Reparatur", SlotState()).urgency == "urgent"

    def test_no_urgency_keyword_leaves_field_unset(self):
        assert extract_appointment_info("Eine Wartung bitte", SlotState()).urgency is None


class TestAddress:
    @pytest.mark.parametrize("text,expected", [
        ("Ich wohne in der Hauptstraße 12 in Köln", "Hauptstraße 12"),
        ("Die Adresse ist Berliner Straße 5", "Berliner Straße 5"),
        ("I live at Main Street 4", "Main Street 4"),
        ("it's 12 Baker Street", "12 Baker Street"),
    ])
    def test_addresses(self, text, expected):
        assert extract_appointment_info(text, SlotState()).address == expected


class TestDateAndTime:
    def test_tomorrow_at_two(self):
        state = extract_appointment_info("Morgen um 14 Uhr wäre gut", SlotState())
        assert state.preferred_date == "morgen"
        assert state.preferred_time == "14:00"

    def test_greeting_is_not_a_date(self):
        assert extract_appointment_info("Guten Morgen!", SlotState()).preferred_date is None

    def test_english_weekday_and_pm(self):
        state = extract_appointment_info("Monday at 2 pm please", SlotState())
        assert state.preferred_date == "monday"
        assert state.preferred_time == "14:00"

    def test_bare_number_is_not_a_time(self):
        assert extract_appointment_info("at 5", SlotState()).preferred_time is None


class TestProperties:
    @pytest.mark.parametrize("text", [
        "My name is Anna Schmidt",
        "It's an emergency, my heater is broken",
        "Mein Name ist Peter Müller, 0171 1234567, Hauptstraße 12, morgen um 9:30",
        "",
    ])
    def test_idempotent(self, text):
        once = extract_appointment_info(text, SlotState())
        twice = extract_appointment_info(text, once)
        assert twice == once

    def test_fields_are_retained_when_not_mentioned(self, complete_state):
        state = extract_appointment_info("Danke, das war alles", complete_state)
        assert state.customer_name == "Anna Schmidt"
        assert state.phone_number == "0171 1234567"
        assert state.service_type == "Heizung"
        assert state.address == "Hauptstraße 12"

    def test_new_value_overwrites(self, complete_state):
        state = extract_appointment_info("Sorry, my name is Anna Becker", complete_state)
        assert state.customer_name == "Anna Becker"

    def test_input_state_is_not_modified(self):
        original = SlotState()
        extract_appointment_info("My name is Anna Schmidt", original)
        assert original.customer_name is None

    @pytest.mark.parametrize("text", [None, 42, "   "])
    def test_malformed_input_returns_state_unchanged(self, text, complete_state):
        assert extract_appointment_info(text, complete_state) == complete_state
