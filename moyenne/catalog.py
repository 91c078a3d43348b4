import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

# ------------------------
# Fixed configuration
# ------------------------
STORAGE_KEY = "moyenneCalc:v1"
DEFAULT_TD_WEIGHT = 50  # percent, exam weight is 100 - this
DEFAULT_SCALE = 20


@dataclass(frozen=True)
class Module:
    id: str
    name: str
    coef: int
    short: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.coef, bool) or not isinstance(self.coef, int):
            raise ValueError(f"Coefficient of {self.id!r} must be an integer (got {self.coef!r}).")
        if self.coef < 1:
            raise ValueError(f"Coefficient of {self.id!r} must be >= 1 (got {self.coef}).")


MODULES: Tuple[Module, ...] = (
    Module("oral-tech-1", "Technique of Oral language 1", 3),
    Module("written-tech-1", "Technique of Written language 1", 3),
    Module("esp", "English for specific purposes", 1, short="ESP"),
    Module("ethics", "ETHICS", 1),
    Module("spec-translation", "Specialized translation", 1),
    Module("library-research", "Library research", 2),
    Module("writing-reports", "Writing reports", 1),
    Module("advanced-grammar", "Advanced grammar", 1),
    Module("cpw", "Communication and professional terms", 1, short="CPW"),
    Module("epp", "English for professional purposes", 1, short="EPP"),
    Module("english-presentation", "English for presentation", 1),
)


def data_dir() -> Path:
    """Directory holding the persisted slot (MOYENNE_HOME, default ~/.moyenne)."""
    override = os.environ.get("MOYENNE_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".moyenne"
