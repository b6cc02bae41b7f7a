"""Tests for the Lead entity."""

import pytest
from pydantic import ValidationError as PydanticValidationError


class TestLeadPreferredContact:
    def test_email_first(self, lead_factory):
        assert lead_factory().preferred_contact == "joao@example.com"

    def test_phone_when_no_email(self, lead_factory):
        assert lead_factory(email=None).preferred_contact == "+55 11 99999-0000"

    def test_empty_when_neither(self, lead_factory):
        assert lead_factory(email=None, phone=None).preferred_contact == ""

    def test_name_too_short(self, lead_factory):
        with pytest.raises(PydanticValidationError):
            lead_factory(name="J")
