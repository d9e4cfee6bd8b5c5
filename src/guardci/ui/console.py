"""Console output formatting utilities for guardci."""

from __future__ import annotations

import sys
from typing import Optional


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_workflow_loaded(self, workflow: str, source: str, job_count: int) -> None:
        """Print workflow summary."""
        print(f"\nWORKFLOW: {workflow}")
        print(f"Source: {source}")
        print(f"Jobs: {job_count}")

    def print_stage(self, index: int, job_ids: list[str]) -> None:
        print(f"\nStage {index}: {', '.join(job_ids)}")

    def print_job(self, job_id: str, needs: list[str], condition: Optional[str]) -> None:
        print(f"  {job_id}")
        if needs:
            print(f"    needs: {', '.join(needs)}")
        if condition:
            print(f"    if: {condition}")

    def print_written(self, path: str) -> None:
        print(f"WROTE: {path}")

    def print_results(self, results: dict[str, str]) -> None:
        """Print final results summary."""
        print("\n" + "=" * 40)
        print("RESULTS")
        print("=" * 40)
        for job, status in results.items():
            status_display = status.upper() if status != "ok" else "SUCCESS"
            print(f"  {job}: {status_display}")

    def print_drift(self, files: list[str]) -> None:
        """Print files changed by the build."""
        print("\nDRIFT DETECTED")
        for f in files:
            print(f"  {f}")
        print("\nCommit these changes (or re-run the build locally) before pushing.")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exc()
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
