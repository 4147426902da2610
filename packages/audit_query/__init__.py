"""
Operator-facing queries over the audit log.

Turns request parameters into audit store filters and shapes results into
the wire format. Unknown parameters are ignored; pagination values are
clamped, never rejected. Storage errors propagate: there is no useful
fallback for a read the operator asked for.
"""

from typing import Mapping, Optional

from packages.audit_store import (
    MAX_SQL_INTEGER,
    MIN_SQL_INTEGER,
    AuditEventsRepresentation,
    AuditFilter,
    AuditStore,
    EventSummaryRepresentation,
    Pagination,
)

# Query parameter names understood by the query endpoints
PARAM_ORIGIN = "origin"
PARAM_REALM = "realmTarget"
PARAM_DOMAIN_EVENT_TYPES = "ctEventType"
PARAM_PROVIDER_EVENT_TYPES = "kcEventType"
PARAM_USER_ID = "userID"
PARAM_DATE_FROM = "dateFrom"
PARAM_DATE_TO = "dateTo"
PARAM_FIRST = "first"
PARAM_MAX = "max"


class QueryParameterError(Exception):
    """Raised when a query parameter is missing or malformed."""

    def __init__(self, param: str, message: str) -> None:
        self.param = param
        super().__init__(f"{message}: {param}")


def _str_param(params: Mapping[str, str], name: str) -> Optional[str]:
    value = params.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _int_param(
    params: Mapping[str, str], name: str, bounded: bool = True
) -> Optional[int]:
    """Integer parameter; ``bounded`` rejects values SQLite cannot bind."""
    value = _str_param(params, name)
    if value is None:
        return None
    try:
        number = int(value)
    except ValueError:
        raise QueryParameterError(name, "Invalid numeric parameter")
    if bounded and not MIN_SQL_INTEGER <= number <= MAX_SQL_INTEGER:
        raise QueryParameterError(name, "Numeric parameter out of range")
    return number


def _list_param(params: Mapping[str, str], name: str) -> Optional[list[str]]:
    value = _str_param(params, name)
    if value is None:
        return None
    items = [item.strip() for item in value.split(",") if item.strip()]
    return items or None


class AuditQueryService:
    """Read side of the audit log for operators."""

    def __init__(self, store: AuditStore) -> None:
        self._store = store

    @staticmethod
    def build_filter(
        params: Mapping[str, str],
        realm: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> AuditFilter:
        """Filter from query parameters; explicit realm/user_id take precedence."""
        return AuditFilter(
            realm=realm or _str_param(params, PARAM_REALM),
            origin=_str_param(params, PARAM_ORIGIN),
            domain_event_types=_list_param(params, PARAM_DOMAIN_EVENT_TYPES),
            provider_event_types=_list_param(params, PARAM_PROVIDER_EVENT_TYPES),
            subject_user_id=user_id or _str_param(params, PARAM_USER_ID),
            date_from=_int_param(params, PARAM_DATE_FROM),
            date_to=_int_param(params, PARAM_DATE_TO),
        )

    @staticmethod
    def build_pagination(params: Mapping[str, str]) -> Pagination:
        return Pagination(
            offset=_int_param(params, PARAM_FIRST, bounded=False),
            limit=_int_param(params, PARAM_MAX, bounded=False),
        )

    def _page(self, audit_filter: AuditFilter, params: Mapping[str, str]) -> AuditEventsRepresentation:
        events, count = self._store.query(audit_filter, self.build_pagination(params))
        return AuditEventsRepresentation(
            events=[event.to_representation() for event in events],
            count=count,
        )

    def get_events(self, params: Mapping[str, str]) -> AuditEventsRepresentation:
        """Events matching the query parameters.

        Raises:
            QueryParameterError: On a malformed numeric parameter.
            StorageError: If the audit database cannot be read.
        """
        return self._page(self.build_filter(params), params)

    def get_user_events(
        self,
        realm: str,
        user_id: str,
        params: Mapping[str, str],
    ) -> AuditEventsRepresentation:
        """Events about one user of one realm."""
        if not realm or not realm.strip():
            raise QueryParameterError("realm", "Missing mandatory parameter")
        if not user_id or not user_id.strip():
            raise QueryParameterError("userID", "Missing mandatory parameter")

        return self._page(
            self.build_filter(params, realm=realm.strip(), user_id=user_id.strip()),
            params,
        )

    def get_events_summary(self, params: Mapping[str, str]) -> EventSummaryRepresentation:
        """Distinct origins, realms and domain event types, optionally for one realm."""
        summary = self._store.summary(realm=_str_param(params, PARAM_REALM))
        return summary.to_representation()


__all__ = [
    "AuditQueryService",
    "PARAM_DATE_FROM",
    "PARAM_DATE_TO",
    "PARAM_DOMAIN_EVENT_TYPES",
    "PARAM_FIRST",
    "PARAM_MAX",
    "PARAM_ORIGIN",
    "PARAM_PROVIDER_EVENT_TYPES",
    "PARAM_REALM",
    "PARAM_USER_ID",
    "QueryParameterError",
]
