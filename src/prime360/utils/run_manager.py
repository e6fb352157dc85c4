"""Run records for verification runs.

Directory Structure:
    output/
        runs/
            YYYYMMDD_HHMMSS_<run_type>_<description>/
                metadata.json     # Status, timestamps, headline summary
                config.json       # Full configuration
                results.json      # Per-scale results
                logs/             # Run log
"""

import json
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, asdict


@dataclass
class RunMetadata:
    """Metadata for a run."""
    run_id: str
    run_type: str
    description: str
    created_at: str
    completed_at: Optional[str] = None
    status: str = "running"
    config: Optional[Dict[str, Any]] = None
    summary: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'RunMetadata':
        return cls(**{k: v for k, v in d.items() if k in cls.__dataclass_fields__})


class RunManager:
    """Manages verification runs with consistent organization."""

    def __init__(self, base_dir: Optional[Path] = None):
        """Initialize run manager.

        Args:
            base_dir: Base directory for outputs. Defaults to ./output
        """
        self.base_dir = Path(base_dir) if base_dir is not None else Path("output")
        self.runs_dir = self.base_dir / "runs"
        self.runs_dir.mkdir(parents=True, exist_ok=True)

    def create_run(
        self,
        run_type: str,
        description: str,
        config: Optional[Dict[str, Any]] = None,
    ) -> 'Run':
        """Create a new run with timestamped directory.

        Args:
            run_type: Type of run (e.g. verify)
            description: Short description (used in directory name, no spaces)
            config: Configuration dictionary to save

        Returns:
            Run object for managing this run
        """
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        # Sanitize description for directory name
        safe_desc = description.replace(" ", "_").replace("/", "-")[:30]
        run_id = f"{timestamp}_{run_type}_{safe_desc}"

        run_dir = self.runs_dir / run_id
        suffix = 1
        while run_dir.exists():
            suffix += 1
            run_dir = self.runs_dir / f"{run_id}_{suffix}"
        run_dir.mkdir(parents=True)
        (run_dir / "logs").mkdir(exist_ok=True)

        metadata = RunMetadata(
            run_id=run_dir.name,
            run_type=run_type,
            description=description,
            created_at=datetime.now().isoformat(),
        )

        run = Run(run_dir, metadata)
        run._save_metadata()

        if config:
            run.save_config(config)

        return run

    def get_run(self, run_id: str) -> Optional['Run']:
        """Get an existing run by ID, or None if it does not exist."""
        run_dir = self.runs_dir / run_id
        metadata_file = run_dir / "metadata.json"
        if not metadata_file.exists():
            return None

        with open(metadata_file) as f:
            metadata = RunMetadata.from_dict(json.load(f))
        return Run(run_dir, metadata)

    def list_runs(self, run_type: Optional[str] = None, limit: int = 20) -> List['Run']:
        """List runs, most recent first.

        Args:
            run_type: Filter by run type
            limit: Maximum number of runs to return
        """
        runs: list['Run'] = []

        # Sort by directory name (which includes timestamp)
        for run_dir in sorted(self.runs_dir.iterdir(), reverse=True):
            if not run_dir.is_dir():
                continue

            run = self.get_run(run_dir.name)
            if run is None:
                continue
            if run_type and run.metadata.run_type != run_type:
                continue

            runs.append(run)
            if len(runs) >= limit:
                break

        return runs

    def get_latest_run(self, run_type: Optional[str] = None) -> Optional['Run']:
        """Get the most recent run."""
        runs = self.list_runs(run_type=run_type, limit=1)
        return runs[0] if runs else None

    def cleanup_old_runs(self, keep_count: int = 10, dry_run: bool = True) -> List[str]:
        """Remove old runs, keeping the most recent.

        Returns:
            List of run IDs that were/would be deleted
        """
        runs = self.list_runs(limit=1_000_000)
        deleted = []
        for run in runs[keep_count:]:
            if not dry_run:
                shutil.rmtree(run.run_dir)
            deleted.append(run.metadata.run_id)
        return deleted


class Run:
    """Represents a single verification run."""

    def __init__(self, run_dir: Path, metadata: RunMetadata):
        self.run_dir = Path(run_dir)
        self.metadata = metadata

    @property
    def logs_dir(self) -> Path:
        return self.run_dir / "logs"

    @property
    def log_path(self) -> Path:
        return self.logs_dir / "run.log"

    def _save_metadata(self):
        with open(self.run_dir / "metadata.json", "w") as f:
            json.dump(self.metadata.to_dict(), f, indent=2)

    def save_config(self, config: Dict[str, Any]):
        """Save configuration to config.json."""
        self.metadata.config = config
        with open(self.run_dir / "config.json", "w") as f:
            json.dump(config, f, indent=2)
        self._save_metadata()

    def save_results(self, results: Dict[str, Any], summary: Optional[Dict[str, Any]] = None):
        """Save results to results.json.

        Args:
            results: Full results dictionary
            summary: Optional summary for quick reference
        """
        results["_run_id"] = self.metadata.run_id
        results["_created_at"] = self.metadata.created_at
        results["_completed_at"] = datetime.now().isoformat()

        with open(self.run_dir / "results.json", "w") as f:
            json.dump(results, f, indent=2)

        if summary:
            self.metadata.summary = summary
            self._save_metadata()

    def load_results(self) -> Optional[Dict[str, Any]]:
        path = self.run_dir / "results.json"
        if not path.exists():
            return None
        with open(path) as f:
            return json.load(f)

    def complete(self, status: str = "completed", summary: Optional[Dict[str, Any]] = None):
        """Mark run as complete.

        Args:
            status: Final status (passed, violated, failed, interrupted)
            summary: Optional summary of results
        """
        self.metadata.status = status
        self.metadata.completed_at = datetime.now().isoformat()
        if summary:
            self.metadata.summary = summary
        self._save_metadata()

    def __repr__(self) -> str:
        return f"Run({self.metadata.run_id}, type={self.metadata.run_type}, status={self.metadata.status})"
