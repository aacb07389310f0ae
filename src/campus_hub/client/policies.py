"""Cache policies for the campus schema."""

from campus_hub.client.cache import FieldPolicy, TypePolicy, null_if_missing, replace, shallow_merge

_REPLACE = FieldPolicy(merge=replace)
_NULLABLE = FieldPolicy(read=null_if_missing)

CAMPUS_TYPE_POLICIES: dict[str, TypePolicy] = {
    # List roots are refetched whole; there is no pagination to merge.
    "Query": TypePolicy(
        fields={
            "faculties": _REPLACE,
            "broadcasts": _REPLACE,
            "myAppointments": _REPLACE,
        }
    ),
    "Faculty": TypePolicy(
        key_fields=("id",),
        fields={
            "availability": FieldPolicy(merge=shallow_merge),
            "weeklySchedule": _REPLACE,
            "image": _NULLABLE,
            "department": _NULLABLE,
            "designation": _NULLABLE,
        },
    ),
    "User": TypePolicy(
        key_fields=("id",),
        fields={
            "image": _NULLABLE,
            "enrollmentNo": _NULLABLE,
            "department": _NULLABLE,
        },
    ),
    "FacultyAvailability": TypePolicy(key_fields=False, merge=shallow_merge),
    "WeeklySchedule": TypePolicy(key_fields=("id",)),
    "DateOverride": TypePolicy(key_fields=False),
}
