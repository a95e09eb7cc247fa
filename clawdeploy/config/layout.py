from dataclasses import dataclass
from pathlib import Path

@dataclass
class RepoLayout:
    """Locations of manifests, templates and generated state below the repo root"""
    root: Path

    def __post_init__(self):
        self.root = Path(self.root).resolve()

    @property
    def env_file(self) -> Path:
        return self.root / ".env"

    @property
    def manifests(self) -> Path:
        return self.root / "manifests"

    @property
    def observability(self) -> Path:
        return self.root / "observability"

    @property
    def private(self) -> Path:
        return self.root / "manifests-private"

    @property
    def openclaw_base(self) -> Path:
        return self.manifests / "openclaw" / "base"

    @property
    def agents(self) -> Path:
        return self.manifests / "openclaw" / "agents"

    @property
    def skills(self) -> Path:
        return self.manifests / "openclaw" / "skills"

    @property
    def a2a(self) -> Path:
        return self.manifests / "openclaw" / "a2a"

    @property
    def resource_report_job_template(self) -> Path:
        return self.agents / "resource-optimizer" / "resource-report-job-template.yaml"

    @property
    def template_roots(self):
        return [self.manifests, self.observability]

    def agent_file(self, name: str) -> Path:
        return self.agents / name
