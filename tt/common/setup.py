import os
from pathlib import Path
from dataclasses import dataclass

APP_DIR_NAME = "Timetracking"

# Lil helper function to create missing directories if missing.
def ensure_directory(path: Path):
    path.mkdir(parents=True,exist_ok=True)
    return path

# Resolves the base data folder. TIMETRACKING_HOME always wins, then APPDATA on Windows, then a dot folder in home.
def resolve_data_root() -> Path:
    override = os.getenv("TIMETRACKING_HOME")
    if override:
        return Path(override)
    appdata = os.getenv("APPDATA")
    if appdata:
        return Path(appdata) / APP_DIR_NAME
    return Path.home() / ".timetracking"

# Dataclass for accessing paths across program.
@dataclass(frozen=False)
class ProjectPaths:

    data: Path
    logs: Path
    current: Path

    @staticmethod
    def build(data_root: Path | None = None):
        data = ensure_directory(Path(data_root) if data_root is not None else resolve_data_root())

        # Folders within the data folder
        logs = ensure_directory(data / "logs")
        current = ensure_directory(data / "current")

        return ProjectPaths(
            data = data,
            logs = logs,
            current = current,
        )
PATHS = ProjectPaths.build()
