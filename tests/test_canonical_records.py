import json
import re

import pytest

from company_import.core.config import settings
from company_import.domain.imports.canonical import (
    Dialect,
    canonicalize_company,
    detect_dialect,
    generate_company_id,
    parse_decimal,
    parse_flag,
    strip_spreadsheet_suffix,
)


NESTED_RECORD = {
    "companyId": "c-1",
    "organisationNumber": "556677-8899",
    "name": "Acme AB",
    "visitorAddress": {"addressLine": "Storgatan 1", "zipCode": "11122", "postPlace": "Stockholm"},
    "postalAddress": {"addressLine": "Box 12", "zipCode": "11199", "postPlace": "Stockholm"},
    "contact": {"email": "info@acme.se", "telephoneNumber": "08-123456.0", "homePage": "acme.se"},
    "location": {"countryPart": "Svealand", "county": "Stockholms län", "municipality": "Stockholm"},
    "financials": {"revenue": "1234,5", "profit": 99},
    "info": {"foundationYear": 1999, "status": {"status": "ACTIVE", "description": "Aktiv"}},
    "roles": {"companyRoles": "board", "personRoles": "ceo"},
    "marketingProtection": "TRUE",
    "stakeholders": [{"name": "Jane"}],
}


def test_detect_dialect_requires_both_address_objects():
    assert detect_dialect(NESTED_RECORD) is Dialect.NESTED
    assert detect_dialect({"visitorAddress": {"addressLine": "x"}}) is Dialect.FLATTENED
    assert detect_dialect({"visitorAddress_addressLine": "x"}) is Dialect.FLATTENED


def test_nested_record_is_mapped_field_by_field():
    company = canonicalize_company(NESTED_RECORD)

    assert company.company_id == "c-1"
    assert company.display_name == "Acme AB"
    assert company.visitor_address.address_line == "Storgatan 1"
    assert company.postal_address.address_line == "Box 12"
    assert company.contact.email == "info@acme.se"
    assert company.location.county == "Stockholms län"
    assert company.financials.revenue == pytest.approx(1234.5)
    assert company.financials.profit == 99
    assert company.info.foundation_year == "1999"
    assert company.info.status.description == "Aktiv"
    assert company.roles.person_roles == "ceo"
    assert company.marketing_protection is True
    assert company.stakeholders == [{"name": "Jane"}]


def test_nested_record_keeps_phone_and_empty_currency():
    company = canonicalize_company(NESTED_RECORD)

    assert company.contact.telephone_number == "08-123456.0"
    assert company.financials.currency == ""


def test_flattened_record_uses_underscore_keys_and_spreadsheet_aliases():
    raw = {
        "companyId": "c-2",
        "name": "Flat Oy",
        "visitor_address": "Kungsgatan 5",
        "visitorAddress_zipCode": "41101",
        "postalAddress_postPlace": "Göteborg",
        "contact_phone": "031123456.0",
        "contact_website": "flat.se",
        "countryPart": "Götaland",
        "status": "INACTIVE",
        "statusDescription": "Avregistrerad",
        "revenue": "10,25",
        "marketingProtection": "false",
    }

    company = canonicalize_company(raw)

    assert company.visitor_address.address_line == "Kungsgatan 5"
    assert company.visitor_address.zip_code == "41101"
    assert company.postal_address.post_place == "Göteborg"
    assert company.contact.telephone_number == "031123456"
    assert company.contact.home_page == "flat.se"
    assert company.location.country_part == "Götaland"
    assert company.info.status.status == "INACTIVE"
    assert company.info.status.description == "Avregistrerad"
    assert company.financials.revenue == pytest.approx(10.25)
    assert company.marketing_protection is False
    assert company.stakeholders == []


def test_flattened_record_defaults_currency():
    company = canonicalize_company({"name": "No Currency AB"})
    assert company.financials.currency == settings.flattened_default_currency

    company = canonicalize_company({"name": "Euro AB", "currency": "EUR"})
    assert company.financials.currency == "EUR"


def test_flat_key_is_used_when_nested_path_is_empty():
    raw = {
        "visitorAddress": {"addressLine": ""},
        "postalAddress": {},
        "visitorAddress_addressLine": "Fallback 3",
    }
    company = canonicalize_company(raw)
    assert company.visitor_address.address_line == "Fallback 3"


def test_defaults_for_missing_fields():
    company = canonicalize_company({"companyId": "c-3"})

    assert company.name == ""
    assert company.info.status.status == "ACTIVE"
    assert company.marketing_protection is False
    assert company.financials.revenue is None


def test_unparsable_revenue_is_absent_from_document():
    company = canonicalize_company({"companyId": "c-4", "revenue": "n/a", "profit": "NaN"})
    document = company.to_document()

    assert "revenue" not in document["financials"]
    assert "profit" not in document["financials"]
    assert document["financials"]["currency"] == "SEK"


def test_document_uses_camel_case_keys():
    document = canonicalize_company(NESTED_RECORD).to_document()

    assert document["companyId"] == "c-1"
    assert document["visitorAddress"]["zipCode"] == "11122"
    assert document["info"]["status"]["status"] == "ACTIVE"
    assert document["marketingProtection"] is True


def test_missing_company_id_is_generated():
    company = canonicalize_company({"name": "Anon AB"})
    assert re.match(r"^comp-\d+-[0-9a-f]{8}$", company.company_id)

    other = canonicalize_company({"name": "Anon AB"})
    assert other.company_id != company.company_id


def test_deterministic_company_ids(monkeypatch):
    monkeypatch.setattr(settings, "deterministic_company_ids", True)

    first = generate_company_id("556677-8899", "Acme AB")
    second = generate_company_id("556677-8899", "Acme AB")

    assert first == second
    assert first.startswith("comp-")
    assert first != generate_company_id("556677-8899", "Other AB")


@pytest.mark.parametrize("raw", [None, "a string", 42, ["list"]])
def test_non_object_records_canonicalize_as_empty(raw):
    company = canonicalize_company(raw)
    assert company.company_id.startswith("comp-")
    assert company.name == ""


def test_converters():
    assert parse_decimal("1234,5") == pytest.approx(1234.5)
    assert parse_decimal(7) == 7.0
    assert parse_decimal("inf") is None
    assert parse_decimal(True) is None
    assert parse_flag("True") is True
    assert parse_flag("yes") is None
    assert strip_spreadsheet_suffix("0701234567.0") == "0701234567"
    assert strip_spreadsheet_suffix("070.01") == "070.01"


def test_structured_nested_values_are_kept_as_json_text():
    raw = dict(NESTED_RECORD)
    raw["location"] = {"county": "Stockholms län", "coordinates": {"lat": 59.3, "lng": 18.0}}
    raw["info"] = {"naceCategories": ["62010 Dataprogrammering"], "proffIndustries": []}

    company = canonicalize_company(raw)

    assert json.loads(company.location.coordinates) == {"lat": 59.3, "lng": 18.0}
    assert json.loads(company.info.nace_categories) == ["62010 Dataprogrammering"]
    assert company.info.proff_industries == "[]"
    assert company.location.county == "Stockholms län"
