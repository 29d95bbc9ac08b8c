"""Case collection filters used by table and facet views."""

from typing import Iterable, List

from cm_core_lib.models.case import CaseRecord

UNKNOWN_STATUS = "unknown"


def filter_cases_by_status(
    cases: Iterable[CaseRecord],
    statuses: Iterable[str],
    exclude: bool = False,
) -> List[CaseRecord]:
    """Keep (or drop, with ``exclude``) cases whose status is in ``statuses``.

    Matching is case-insensitive and exact; a missing status matches
    "unknown".
    """
    wanted = {status.lower() for status in statuses}

    def matches(case: CaseRecord) -> bool:
        status = (case.case_status or UNKNOWN_STATUS).lower()
        return (status in wanted) != exclude

    return [case for case in cases if matches(case)]


def unique_field_values(cases: Iterable[CaseRecord], field_name: str) -> List[str]:
    """Sorted distinct values of ``field_name`` across ``cases``.

    List fields contribute each element; missing values are ignored.

    Raises:
        ValueError: If ``field_name`` is not a CaseRecord field
    """
    if field_name not in CaseRecord.model_fields:
        raise ValueError(f"Unknown case field: {field_name}")

    values = set()
    for case in cases:
        value = getattr(case, field_name)
        if isinstance(value, (list, tuple)):
            values.update(str(v) for v in value)
        elif value is not None:
            values.add(str(value))
    return sorted(values)
