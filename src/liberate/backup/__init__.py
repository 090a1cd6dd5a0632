"""
Backup and restore engine for Liberate.

Snapshots of everything the conversion alters are captured by element
backends, described by a metadata ledger, kept in a snapshot store and
replayed by the restore orchestrator.
"""

from .elements import ElementKind, CaptureResult, ReplayResult
from .metadata import MetadataDescriptor
from .store import SnapshotStore, SnapshotRef, SnapshotSummary
from .builder import SnapshotBuilder, BuildReport
from .restore import RestoreOrchestrator, RestorePolicy, RestoreStep, RestoreReport
from .archive import SnapshotArchiver

__all__ = [
    'ElementKind',
    'CaptureResult',
    'ReplayResult',
    'MetadataDescriptor',
    'SnapshotStore',
    'SnapshotRef',
    'SnapshotSummary',
    'SnapshotBuilder',
    'BuildReport',
    'RestoreOrchestrator',
    'RestorePolicy',
    'RestoreStep',
    'RestoreReport',
    'SnapshotArchiver',
]
