"""Generated clinical note returned by the note-generation service."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Wire keys (camelCase as sent by the service) mapped to attribute names
_FIELD_KEYS = {
    "chief_complaint": ("chiefComplaint", "chief_complaint"),
    "history_of_present_illness": ("historyOfPresentIllness", "history_of_present_illness"),
    "clinical_findings": ("clinicalFindings", "clinical_findings"),
    "assessment": ("assessment",),
    "plan": ("plan",),
    "follow_up": ("followUp", "follow_up"),
}


def _first(payload: Dict[str, Any], keys) -> Optional[Any]:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return None


@dataclass
class GeneratedNote:
    """
    Structured clinical note.

    The internal structure is owned by the remote service; fields missing
    from the payload are left empty rather than rejected.
    """

    chief_complaint: str = ""
    history_of_present_illness: str = ""
    clinical_findings: str = ""
    assessment: str = ""
    plan: str = ""
    medications: List[str] = field(default_factory=list)
    follow_up: str = ""
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "GeneratedNote":
        """Build a note from the service's ``notes`` object."""
        if not isinstance(payload, dict):
            raise ValueError("Generated note payload must be an object")

        values: Dict[str, Any] = {}
        for attr, keys in _FIELD_KEYS.items():
            value = _first(payload, keys)
            values[attr] = "" if value is None else str(value)

        medications = payload.get("medications") or []
        if isinstance(medications, str):
            medications = [medications]
        values["medications"] = [str(m) for m in medications]

        return cls(raw=dict(payload), **values)

    def to_dict(self) -> Dict[str, Any]:
        """camelCase form returned to clients."""
        return {
            "chiefComplaint": self.chief_complaint,
            "historyOfPresentIllness": self.history_of_present_illness,
            "clinicalFindings": self.clinical_findings,
            "assessment": self.assessment,
            "plan": self.plan,
            "medications": list(self.medications),
            "followUp": self.follow_up,
        }
