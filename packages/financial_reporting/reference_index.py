"""Lookup tables built once per import from the tenant's registries.

Keys are normalized the same way incoming rows are:

- companies by CNPJ (digits only) and by trimmed ERP code;
- accounts by code, plus the leading-zero-stripped code and every
  right-zero-padded variant up to 15 characters (``"341101"`` also answers to
  ``"3411010"`` .. ``"341101000000000"``);
- cost centers by code plus the leading-zero-stripped code.

On a key collision the last record wins. Collisions are logged, never raised.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from .logging_setup import get_logger
from .models import ReferenceCollections
from .normalizers import normalize_cnpj, normalize_code, strip_leading_zeros

logger = get_logger("financial_reporting.reference_index")

MAX_PADDED_CODE_LENGTH = 15

_ACCOUNT_CODE_FIELDS = ("codigo", "codigo_contabil", "reducedCode", "code")
_COST_CENTER_CODE_FIELDS = ("codigo", "sigla", "code")
_ERP_CODE_FIELDS = ("codigo_erp", "erpCode", "erp_code")


def _field(record: Any, *names: str) -> Any:
    for name in names:
        if isinstance(record, Mapping):
            value = record.get(name)
        else:
            value = getattr(record, name, None)
        if value is not None and normalize_code(value):
            return value
    return None


def account_code_variants(code: str) -> list[str]:
    """All keys an account registered under ``code`` is indexed by."""

    code = code.strip()
    if not code:
        return []
    variants = [code]
    stripped = strip_leading_zeros(code)
    if stripped != code:
        variants.append(stripped)
    for length in range(len(code) + 1, MAX_PADDED_CODE_LENGTH + 1):
        variants.append(code.ljust(length, "0"))
    return variants


def cost_center_code_variants(code: str) -> list[str]:
    code = code.strip()
    if not code:
        return []
    stripped = strip_leading_zeros(code)
    return [code] if stripped == code else [code, stripped]


@dataclass(slots=True)
class _IndexWriter:
    name: str
    data: dict[str, str] = field(default_factory=dict)
    # (key, previous id, new id, one side exact and the other a derived variant)
    collisions: list[tuple[str, str, str, bool]] = field(default_factory=list)
    derived_keys: set[str] = field(default_factory=set)

    def put(self, key: str, record_id: str, *, derived: bool = False) -> None:
        previous = self.data.get(key)
        if previous is not None and previous != record_id:
            mixed = derived != (key in self.derived_keys)
            self.collisions.append((key, previous, record_id, mixed))
        self.data[key] = record_id
        if derived:
            self.derived_keys.add(key)
        else:
            self.derived_keys.discard(key)

    def put_variants(self, variants: list[str], record_id: str) -> None:
        """Index ``variants[0]`` as the exact code and the rest as derived keys."""

        for i, key in enumerate(variants):
            self.put(key, record_id, derived=i > 0)


@dataclass(frozen=True, slots=True)
class ReferenceIndex:
    """Read-only lookup maps for one import run."""

    company_by_cnpj: Mapping[str, str]
    company_by_erp: Mapping[str, str]
    account_by_code: Mapping[str, str]
    cost_center_by_code: Mapping[str, str]

    def find_company(self, cnpj: str | None, erp_code: str | None) -> str | None:
        """CNPJ first, ERP code as the fallback."""

        if cnpj:
            found = self.company_by_cnpj.get(normalize_cnpj(cnpj))
            if found is not None:
                return found
        if erp_code:
            return self.company_by_erp.get(erp_code.strip())
        return None

    def find_account(self, code: str | None) -> str | None:
        if not code:
            return None
        code = code.strip()
        found = self.account_by_code.get(code)
        if found is None:
            found = self.account_by_code.get(strip_leading_zeros(code))
        return found

    def find_cost_center(self, code: str | None) -> str | None:
        if not code:
            return None
        code = code.strip()
        found = self.cost_center_by_code.get(code)
        if found is None:
            found = self.cost_center_by_code.get(strip_leading_zeros(code))
        return found


def _index_accounts(accounts: Iterable[Any], writer: _IndexWriter) -> None:
    for account in accounts:
        code = normalize_code(_field(account, *_ACCOUNT_CODE_FIELDS))
        account_id = _field(account, "id")
        if not code or account_id is None:
            continue
        writer.put_variants(account_code_variants(code), str(account_id))


def build_account_index(accounts: Iterable[Any]) -> Mapping[str, str]:
    """Account code → id map alone (used by the monthly-balance store)."""

    writer = _IndexWriter("account_by_code")
    _index_accounts(accounts, writer)
    _report_collisions([writer])
    return MappingProxyType(writer.data)


def _report_collisions(writers: Iterable[_IndexWriter]) -> None:
    summary: list[str] = []
    for writer in writers:
        if not writer.collisions:
            continue
        mixed = sum(1 for *_, is_mixed in writer.collisions if is_mixed)
        entry = f"{writer.name}={len(writer.collisions)}"
        if mixed:
            entry += f" ({mixed} exact/derived)"
        summary.append(entry)
        for key, previous, current, is_mixed in writer.collisions:
            logger.debug(
                "%s key %r: %s replaced by %s%s",
                writer.name,
                key,
                previous,
                current,
                " (exact code vs derived variant)" if is_mixed else "",
            )
    if summary:
        logger.warning(
            "Reference index key collisions (last record wins): %s", ", ".join(summary)
        )


def build_reference_index(collections: ReferenceCollections) -> ReferenceIndex:
    """Build all four lookup maps from tenant-filtered registries."""

    by_cnpj = _IndexWriter("company_by_cnpj")
    by_erp = _IndexWriter("company_by_erp")
    for company in collections.companies:
        company_id = _field(company, "id")
        if company_id is None:
            continue
        cnpj = normalize_cnpj(_field(company, "cnpj"))
        erp = normalize_code(_field(company, *_ERP_CODE_FIELDS))
        if cnpj:
            by_cnpj.put(cnpj, str(company_id))
        if erp:
            by_erp.put(erp, str(company_id))

    accounts = _IndexWriter("account_by_code")
    _index_accounts(collections.accounts, accounts)

    cost_centers = _IndexWriter("cost_center_by_code")
    for cc in collections.cost_centers:
        code = normalize_code(_field(cc, *_COST_CENTER_CODE_FIELDS))
        cc_id = _field(cc, "id")
        if not code or cc_id is None:
            continue
        cost_centers.put_variants(cost_center_code_variants(code), str(cc_id))

    logger.info(
        "Loaded reference data: companies=%d accounts=%d cost_centers=%d",
        len(collections.companies),
        len(collections.accounts),
        len(collections.cost_centers),
    )
    _report_collisions([by_cnpj, by_erp, accounts, cost_centers])

    return ReferenceIndex(
        company_by_cnpj=MappingProxyType(by_cnpj.data),
        company_by_erp=MappingProxyType(by_erp.data),
        account_by_code=MappingProxyType(accounts.data),
        cost_center_by_code=MappingProxyType(cost_centers.data),
    )


__all__ = [
    "MAX_PADDED_CODE_LENGTH",
    "ReferenceIndex",
    "account_code_variants",
    "cost_center_code_variants",
    "build_account_index",
    "build_reference_index",
]
