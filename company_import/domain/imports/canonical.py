"""
Canonical company record model and the canonicalizer that maps raw import
records onto it.

Raw records arrive in one of two dialects:

- nested: ``visitorAddress`` and ``postalAddress`` are objects and the other
  groups (``contact``, ``financials``, ...) are sub-objects as well
- flattened: the same information as top-level keys joined with ``_`` or
  ``.`` (``visitorAddress_addressLine``), plus a handful of spreadsheet
  aliases (``visitor_address``, ``contact_phone``, ...)

Both dialects go through one ordered resolver table, so adding an alias for a
field is a one-line change that applies everywhere.
"""
import hashlib
import json
import logging
import math
import re
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from company_import.core.config import settings

logger = logging.getLogger(__name__)

DEFAULT_COMPANY_STATUS = "ACTIVE"
_SPREADSHEET_FLOAT_SUFFIX = re.compile(r"\.0$")


class Dialect(str, Enum):
    NESTED = "nested"
    FLATTENED = "flattened"


class _DocumentModel(BaseModel):
    """Snake_case attributes, camelCase keys in stored documents."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Address(_DocumentModel):
    address_line: str = ""
    zip_code: str = ""
    post_place: str = ""


class Contact(_DocumentModel):
    email: str = ""
    telephone_number: str = ""
    mobile_phone: str = ""
    fax_number: str = ""
    home_page: str = ""


class Location(_DocumentModel):
    country_part: str = ""
    county: str = ""
    municipality: str = ""
    coordinates: str = ""


class Financials(_DocumentModel):
    revenue: Optional[float] = None
    profit: Optional[float] = None
    currency: str = ""
    company_accounts_last_updated_date: str = ""


class CompanyStatus(_DocumentModel):
    status: str = DEFAULT_COMPANY_STATUS
    description: str = ""
    status_date: str = ""


class CompanyInfo(_DocumentModel):
    foundation_year: str = ""
    foundation_date: str = ""
    number_of_employees: str = ""
    status: CompanyStatus = Field(default_factory=CompanyStatus)
    nace_categories: str = ""
    proff_industries: str = ""


class Roles(_DocumentModel):
    company_roles: str = ""
    person_roles: str = ""


class CanonicalCompanyRecord(_DocumentModel):
    """The normalized company shape every import converges to."""

    company_id: str
    organisation_number: str = ""
    name: str = ""
    display_name: str = ""
    business_unit_id: str = ""
    visitor_address: Address = Field(default_factory=Address)
    postal_address: Address = Field(default_factory=Address)
    contact: Contact = Field(default_factory=Contact)
    location: Location = Field(default_factory=Location)
    financials: Financials = Field(default_factory=Financials)
    info: CompanyInfo = Field(default_factory=CompanyInfo)
    roles: Roles = Field(default_factory=Roles)
    marketing_protection: bool = False
    main_office: str = ""
    secret_data: str = ""
    stakeholders: List[Any] = Field(default_factory=list)

    def to_document(self) -> Dict[str, Any]:
        """Return the stored document: camelCase keys, absent financials omitted."""
        document = self.model_dump(by_alias=True)
        financials = document["financials"]
        for key in ("revenue", "profit"):
            if financials.get(key) is None:
                financials.pop(key, None)
        return document


# ---------------------------------------------------------------------------
# Value converters. Each returns None when the value is unusable so the
# resolver moves on to the next alias.
# ---------------------------------------------------------------------------

def _as_text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(value) if math.isfinite(value) else None
    if isinstance(value, (Mapping, list, tuple)):
        # Structured values (coordinates objects, category lists) are kept as JSON text
        try:
            return json.dumps(value, ensure_ascii=False, default=str)
        except ValueError:
            logger.warning("Dropping structured value that cannot be serialized: %r", value)
            return None
    logger.debug("Dropping value of unsupported type %s", type(value).__name__)
    return None


def parse_decimal(value: Any) -> Optional[float]:
    """
    Parse a numeric field that may use a decimal comma.

    Returns None (absent) rather than 0 or NaN for anything that does not
    parse to a finite number.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().replace(",", "."))
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def parse_flag(value: Any) -> Optional[bool]:
    """Accept real booleans or the literals "true"/"false" in any case."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "false"):
            return lowered == "true"
    return None


def strip_spreadsheet_suffix(phone: str) -> str:
    """Drop the trailing ".0" spreadsheet exports add to numeric phone cells."""
    return _SPREADSHEET_FLOAT_SUFFIX.sub("", phone)


# ---------------------------------------------------------------------------
# Resolver table
# ---------------------------------------------------------------------------

def _lookup(raw: Mapping[str, Any], source: str) -> Any:
    """Find ``source`` as a literal top-level key first, then as a dotted path."""
    if source in raw:
        return raw[source]
    if "." not in source:
        return None
    current: Any = raw
    for part in source.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return None
        current = current[part]
    return current


@dataclass(frozen=True)
class FieldResolver:
    target: str
    sources: Tuple[str, ...]
    convert: Callable[[Any], Any] = _as_text

    def resolve(self, raw: Mapping[str, Any]) -> Any:
        for source in self.sources:
            value = _lookup(raw, source)
            if value is None or value == "":
                continue
            converted = self.convert(value)
            if converted is not None:
                return converted
        return None


def _text(target: str, *sources: str) -> FieldResolver:
    return FieldResolver(target, sources or (target,))


FIELD_RESOLVERS: Tuple[FieldResolver, ...] = (
    _text("companyId"),
    _text("organisationNumber"),
    _text("name"),
    _text("displayName"),
    _text("businessUnitId"),
    _text("visitorAddress.addressLine", "visitorAddress.addressLine", "visitorAddress_addressLine", "visitor_address"),
    _text("visitorAddress.zipCode", "visitorAddress.zipCode", "visitorAddress_zipCode", "visitor_zipCode"),
    _text("visitorAddress.postPlace", "visitorAddress.postPlace", "visitorAddress_postPlace", "visitor_postPlace"),
    _text("postalAddress.addressLine", "postalAddress.addressLine", "postalAddress_addressLine", "postal_address"),
    _text("postalAddress.zipCode", "postalAddress.zipCode", "postalAddress_zipCode", "postal_zipCode"),
    _text("postalAddress.postPlace", "postalAddress.postPlace", "postalAddress_postPlace", "postal_postPlace"),
    _text("contact.email", "contact.email", "email", "contact_email"),
    _text("contact.telephoneNumber", "contact.telephoneNumber", "telephoneNumber", "contact_phone"),
    _text("contact.mobilePhone", "contact.mobilePhone", "mobilePhone", "contact_mobile"),
    _text("contact.faxNumber", "contact.faxNumber", "faxNumber", "contact_fax"),
    _text("contact.homePage", "contact.homePage", "homePage", "contact_website"),
    _text("location.countryPart", "location.countryPart", "location_countryPart", "countryPart"),
    _text("location.county", "location.county", "location_county", "county"),
    _text("location.municipality", "location.municipality", "location_municipality", "municipality"),
    _text("location.coordinates", "location.coordinates", "location_coordinates", "coordinates"),
    FieldResolver("financials.revenue", ("financials.revenue", "revenue"), parse_decimal),
    FieldResolver("financials.profit", ("financials.profit", "profit"), parse_decimal),
    _text("financials.currency", "financials.currency", "currency"),
    _text(
        "financials.companyAccountsLastUpdatedDate",
        "financials.companyAccountsLastUpdatedDate",
        "companyAccountsLastUpdatedDate",
    ),
    _text("info.foundationYear", "info.foundationYear", "foundationYear"),
    _text("info.foundationDate", "info.foundationDate", "foundationDate"),
    _text("info.numberOfEmployees", "info.numberOfEmployees", "numberOfEmployees"),
    _text("info.status.status", "info.status.status", "status_status", "status"),
    _text("info.status.description", "info.status.description", "status_description", "statusDescription"),
    _text("info.status.statusDate", "info.status.statusDate", "status_statusDate", "statusDate"),
    _text("info.naceCategories", "info.naceCategories", "naceCategories"),
    _text("info.proffIndustries", "info.proffIndustries", "proffIndustries"),
    _text("roles.companyRoles", "roles.companyRoles", "companyRoles"),
    _text("roles.personRoles", "roles.personRoles", "personRoles"),
    FieldResolver("marketingProtection", ("marketingProtection",), parse_flag),
    _text("mainOffice"),
    _text("secretData"),
)


def _set_path(document: Dict[str, Any], path: str, value: Any) -> None:
    *parents, leaf = path.split(".")
    current = document
    for part in parents:
        current = current.setdefault(part, {})
    current[leaf] = value


def detect_dialect(raw: Mapping[str, Any]) -> Dialect:
    """A record is nested when both address groups are already objects."""
    if isinstance(raw.get("visitorAddress"), Mapping) and isinstance(raw.get("postalAddress"), Mapping):
        return Dialect.NESTED
    return Dialect.FLATTENED


def generate_company_id(organisation_number: str = "", name: str = "") -> str:
    """
    Build an id for a record that arrived without ``companyId``.

    The default is a time + random token, so re-importing such a record
    creates a new document each time. With ``deterministic_company_ids``
    enabled the id is derived from organisation number and name instead.
    """
    if settings.deterministic_company_ids and (organisation_number or name):
        digest = hashlib.sha256(f"{organisation_number}|{name}".encode("utf-8")).hexdigest()
        return f"comp-{digest[:24]}"
    return f"comp-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def canonicalize_company(raw: Any) -> CanonicalCompanyRecord:
    """
    Map one raw record (either dialect) onto the canonical model.

    Never raises for bad data: missing or malformed fields fall back to their
    defaults. A raw value that is not a mapping is treated as an empty record.
    """
    if not isinstance(raw, Mapping):
        logger.debug("Non-object import record of type %s canonicalized as empty", type(raw).__name__)
        raw = {}

    dialect = detect_dialect(raw)
    document: Dict[str, Any] = {}
    for resolver in FIELD_RESOLVERS:
        value = resolver.resolve(raw)
        if value is not None:
            _set_path(document, resolver.target, value)

    if "companyId" not in document:
        document["companyId"] = generate_company_id(
            document.get("organisationNumber", ""), document.get("name", "")
        )
    document.setdefault("displayName", document.get("name", ""))

    if dialect is Dialect.NESTED:
        stakeholders = raw.get("stakeholders")
        document["stakeholders"] = list(stakeholders) if isinstance(stakeholders, list) else []
    else:
        # Only flattened records get a currency fallback; nested ones keep ""
        financials = document.setdefault("financials", {})
        financials.setdefault("currency", settings.flattened_default_currency)
        phone = document.get("contact", {}).get("telephoneNumber")
        if phone:
            document["contact"]["telephoneNumber"] = strip_spreadsheet_suffix(phone)

    return CanonicalCompanyRecord.model_validate(document)
