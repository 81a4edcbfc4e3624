from scheduling.errors import (
    SchedulingError,
    FieldIssue,
    ValidationError,
    ConflictError,
    StoreError,
    EntryNotFoundError,
    PartialCommitError,
    StaleSnapshotError,
)
from scheduling.conflicts import (
    ConflictIndex,
    ConflictReport,
    SlotCandidate,
    detect_conflict,
    time_ranges_overlap,
)
from scheduling.reconciler import (
    ClassReconciler,
    EntryUpdate,
    ReconciliationPlan,
    reconcile,
    validate_edit,
)
from scheduling.grouping import group_entries, find_related_entries, find_logical_class
