"""
Immutable vaccine catalog and its YAML loader
"""

import yaml
import logging
from typing import Dict, FrozenSet, List, Optional, Tuple, Union
from pathlib import Path
from pydantic import BaseModel, ConfigDict, model_validator

from .schema import DoseDefinition
from .errors import InvalidCatalogError, UnknownDoseError

logger = logging.getLogger(__name__)

class Catalog(BaseModel):
    """Ordered, read-only collection of dose definitions.

    Built once (usually from a YAML file) and passed explicitly to every
    engine function. Derived catalogs are new instances; nothing mutates one
    in place.
    """
    model_config = ConfigDict(frozen=True)

    version: str = ""
    doses: Tuple[DoseDefinition, ...] = ()
    incompatible_pairs: FrozenSet[FrozenSet[str]] = frozenset()  # unordered id pairs

    @model_validator(mode="after")
    def _check_invariants(self) -> "Catalog":
        seen = set()
        for dose in self.doses:
            if dose.id in seen:
                raise InvalidCatalogError(f"Duplicate dose id '{dose.id}'", dose_id=dose.id)
            seen.add(dose.id)

        for series_key, series in self._group_by_series().items():
            totals = {d.total_doses_in_series for d in series}
            if len(totals) > 1:
                raise InvalidCatalogError(
                    f"Series '{series_key}' declares conflicting totals {sorted(totals)}",
                    series_key=series_key
                )

            previous = None
            for dose in series:
                if previous is not None:
                    if dose.dose_number == previous.dose_number:
                        raise InvalidCatalogError(
                            f"Series '{series_key}' has two definitions of dose {dose.dose_number}",
                            dose_id=dose.id, series_key=series_key
                        )
                    if dose.target_age_weeks < previous.target_age_weeks:
                        raise InvalidCatalogError(
                            f"Dose '{dose.id}' is scheduled before '{previous.id}' in series '{series_key}'",
                            dose_id=dose.id, series_key=series_key
                        )
                previous = dose

        for pair in self.incompatible_pairs:
            if len(pair) != 2:
                raise InvalidCatalogError(
                    f"Incompatible pair must name two different doses: {sorted(pair)}"
                )
            for dose_id in pair:
                if dose_id not in seen:
                    raise InvalidCatalogError(
                        f"Incompatible pair references unknown dose '{dose_id}'",
                        dose_id=dose_id
                    )

        return self

    def _group_by_series(self) -> Dict[str, List[DoseDefinition]]:
        groups: Dict[str, List[DoseDefinition]] = {}
        for dose in self.doses:
            groups.setdefault(dose.series_key, []).append(dose)
        for series in groups.values():
            series.sort(key=lambda d: d.dose_number)
        return groups

    def __len__(self) -> int:
        return len(self.doses)

    def __contains__(self, dose_id: object) -> bool:
        return any(d.id == dose_id for d in self.doses)

    @property
    def ids(self) -> List[str]:
        return [d.id for d in self.doses]

    def get(self, dose_id: str) -> DoseDefinition:
        for dose in self.doses:
            if dose.id == dose_id:
                return dose
        raise UnknownDoseError(dose_id, catalog_version=self.version or None)

    def series(self, series_key: str) -> List[DoseDefinition]:
        """Doses of one series ordered by dose number"""
        return self._group_by_series().get(series_key, [])

    def previous_in_series(self, dose: DoseDefinition) -> Optional[DoseDefinition]:
        for candidate in self.doses:
            if (candidate.series_key == dose.series_key and
                    candidate.dose_number == dose.dose_number - 1):
                return candidate
        return None

    def next_in_series(self, dose: DoseDefinition) -> Optional[DoseDefinition]:
        for candidate in self.doses:
            if (candidate.series_key == dose.series_key and
                    candidate.dose_number == dose.dose_number + 1):
                return candidate
        return None

    def doses_in_window(self, age_in_weeks: int) -> List[DoseDefinition]:
        """Doses whose age window contains the given age"""
        return [
            d for d in self.doses
            if d.target_age_weeks <= age_in_weeks <= d.window_end_weeks
        ]

    def can_coadminister(self, first_id: str, second_id: str) -> bool:
        """Whether two doses may be given at the same visit"""
        self.get(first_id)
        self.get(second_id)
        return frozenset((first_id, second_id)) not in self.incompatible_pairs

    def with_doses(self, doses: List[DoseDefinition]) -> "Catalog":
        """New catalog with the same version and co-administration rules"""
        kept = {d.id for d in doses}
        pairs = frozenset(p for p in self.incompatible_pairs if p <= kept)
        return Catalog(version=self.version, doses=tuple(doses), incompatible_pairs=pairs)

def load_catalog(path: Union[str, Path]) -> Catalog:
    """Load a catalog from a YAML file"""
    path = Path(path)
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        catalog = Catalog(
            version=str(data.get('version', '')),
            doses=tuple(DoseDefinition(**entry) for entry in data.get('doses', [])),
            incompatible_pairs=frozenset(frozenset(p) for p in data.get('incompatible_pairs', []))
        )

    except Exception as e:
        logger.error(f"Failed to load vaccine catalog from {path}: {e}")
        raise

    logger.info(f"Loaded vaccine catalog {catalog.version or '(unversioned)'} "
                f"with {len(catalog)} doses from {path}")
    return catalog
