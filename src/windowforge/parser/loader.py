"""YAML loader for realtime report definitions.

a file holds a list of reports, optionally sharing a project:

  project: demo
  reports:
    - name: Pageviews by country
      collections: [pageview]
      measures:
        - {column: user_id, aggregation: COUNT}
      dimensions: [country]

yaml because the definitions live in git next to everything else.
"""

from pathlib import Path
from typing import Any

import yaml

from windowforge.models.report import ReportDefinition


class ReportLoader:
    """Loads report definitions from yaml, rejecting duplicate table names."""

    def __init__(self, default_project: str | None = None) -> None:
        self.default_project = default_project
        self.reports: dict[tuple[str, str], ReportDefinition] = {}

    def load_directory(self, path: Path) -> list[ReportDefinition]:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Reports directory not found: {path}")

        yaml_files = sorted(list(path.glob("**/*.yaml")) + list(path.glob("**/*.yml")))
        if not yaml_files:
            raise ValueError(f"No YAML files found in {path}")

        loaded = []
        for yaml_file in yaml_files:
            loaded.extend(self.load_file(yaml_file))
        return loaded

    def load_file(self, path: Path) -> list[ReportDefinition]:
        """Parse a single YAML file. empty files are ignored."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Report file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f)

        if data is None:
            return []

        project = data.get("project", self.default_project)
        loaded = []
        for report_data in data.get("reports", []):
            report = self._parse_report(report_data, project)
            key = (report.project, report.table_name)
            if key in self.reports:
                raise ValueError(f"Duplicate report table: {report.project}/{report.table_name}")
            self.reports[key] = report
            loaded.append(report)
        return loaded

    def _parse_report(self, data: dict[str, Any], project: str | None) -> ReportDefinition:
        data = dict(data)
        data.setdefault("project", project)
        if not data.get("project"):
            raise ValueError(f"Report '{data.get('name')}' has no project")
        return ReportDefinition.model_validate(data)
