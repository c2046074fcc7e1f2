"""
Filesystem helpers for proof jobs.

- tempdirs : uniquely named per-request workspaces with scoped cleanup
"""

from __future__ import annotations

from .tempdirs import TempWorkspace, create_proof_output_dir, create_workspace, unique_name

__all__ = ["TempWorkspace", "create_workspace", "create_proof_output_dir", "unique_name"]
