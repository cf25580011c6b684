from types import MappingProxyType
from typing import Mapping, Optional, Protocol


class LabelLookup(Protocol):
    def label(self, namespace: str, key: str) -> str:
        ...


DEFAULT_LABELS = {
    "field": {
        "asa-score": "ASA score",
        "age-years": "Age (years)",
        "age-months": "Age (months)",
        "case-number": "Case number",
        "procedure": "Procedure",
        "department": "Department",
        "airway-management": "Airway management",
        "specials": "Specials",
        "outpatient": "Outpatient",
        "emergency": "Emergency",
        "favorite": "Favorite",
        "special-features": "Special features",
        "local-anesthetics": "Regional anesthesia",
        "age": "Age",
        "age.younger-than": "younger than {threshold}",
        "age.at-least": "{threshold} or older",
    },
    "operator": {
        "eq": "=",
        "ct": "∋",
        "gt": ">",
        "gte": "≥",
        "lt": "<",
        "lte": "≤",
    },
    "boolean": {
        "true": "yes",
        "false": "no",
    },
    "department-enum": {
        "TC": "Thoracic surgery",
        "NC": "Neurosurgery",
        "AC": "General surgery",
        "GC": "Vascular surgery",
        "HNO": "ENT",
        "HG": "Hand surgery",
        "DE": "Dermatology",
        "PC": "Plastic surgery",
        "UC": "Trauma surgery",
        "URO": "Urology",
        "GYN": "Gynecology",
        "MKG": "Oral and maxillofacial surgery",
        "RAD": "Radiology",
        "NRAD": "Neuroradiology",
        "PSY": "Psychiatry",
        "other": "Other",
    },
    "airway-enum": {
        "tube": "Endotracheal tube",
        "lama": "Laryngeal mask",
        "tracheostomy": "Tracheostomy",
        "mask": "Face mask",
        "spontaneous": "Spontaneous breathing",
        "cricothyrotomy": "Cricothyrotomy",
        "doppel-lumen-tube": "Double-lumen tube",
    },
    "specials-enum": {
        "outpatient": "Outpatient",
        "analgosedation": "Analgosedation",
        "emergency": "Emergency",
        "difficult-airway": "Difficult airway",
        "rapid-sequence-induction": "Rapid sequence induction",
        "arterial-line": "Arterial line",
        "central-venous-catheter": "Central venous catheter",
    },
    "filter": {
        "summary.empty": "No conditions",
        "summary.more": "+{count} more",
    },
}


class LabelCatalog:
    """
    In-memory label lookup. Unknown namespaces or keys resolve to the raw key,
    so a missing translation never breaks rendering.
    """

    def __init__(self, overrides: Optional[Mapping[str, Mapping[str, str]]] = None):
        merged = {namespace: dict(labels) for namespace, labels in DEFAULT_LABELS.items()}
        for namespace, labels in (overrides or {}).items():
            merged.setdefault(namespace, {}).update(labels)
        self._labels = MappingProxyType(merged)

    def label(self, namespace: str, key: str) -> str:
        return self._labels.get(namespace, {}).get(key, key)


def format_number(value: float) -> str:
    # 3.0 -> "3", 2.5 -> "2.5"
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"
