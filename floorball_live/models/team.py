"""Team model for the Floorball Live match tracker."""
from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class Team:
    """A team taking part in matches.

    Attributes:
        id: Storage identifier
        name: Display name
        logo: Logo glyph or image URL
    """
    id: str
    name: str
    logo: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"id": self.id, "name": self.name, "logo": self.logo}

    def to_ref(self) -> Dict[str, str]:
        """Reference form stored inside match documents."""
        return {"id": self.id}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Team':
        """Create from dictionary for JSON deserialization."""
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            logo=data.get("logo", ""),
        )
