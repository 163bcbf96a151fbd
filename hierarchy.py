from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from seeded_random import SeededRandom

logger = logging.getLogger(__name__)


VOLUME_CLASSES = ("High", "Medium", "Low")
STATUSES = ("Improving", "Stagnant", "Declining")

# (region name, status-roll bias, area names)
REGION_TABLE: List[Tuple[str, float, List[str]]] = [
    (
        "Wilayah Jawa",
        0.1,
        ["Jakarta Pusat", "Jakarta Selatan", "Jakarta Barat", "Bandung", "Surabaya", "Semarang", "Yogyakarta"],
    ),
    ("Wilayah Sumatera", 0.0, ["Medan", "Palembang", "Pekanbaru", "Padang", "Lampung"]),
    ("Wilayah Kalimantan", 0.0, ["Balikpapan", "Banjarmasin", "Pontianak", "Samarinda"]),
    ("Wilayah Sulawesi", -0.1, ["Makassar", "Manado", "Kendari", "Palu"]),
]

BRANCH_PREFIXES = ["KC", "KCP", "KK"]

# (latitude, longitude)
CITY_COORDINATES: Dict[str, Tuple[float, float]] = {
    "Jakarta Pusat": (-6.18, 106.83),
    "Jakarta Selatan": (-6.26, 106.81),
    "Jakarta Barat": (-6.16, 106.76),
    "Bandung": (-6.91, 107.61),
    "Surabaya": (-7.25, 112.75),
    "Semarang": (-7.00, 110.42),
    "Yogyakarta": (-7.79, 110.36),
    "Medan": (3.59, 98.67),
    "Palembang": (-2.97, 104.77),
    "Pekanbaru": (0.50, 101.44),
    "Padang": (-0.94, 100.41),
    "Lampung": (-5.39, 105.26),
    "Balikpapan": (-1.23, 116.88),
    "Banjarmasin": (-3.31, 114.59),
    "Pontianak": (-0.02, 109.33),
    "Samarinda": (-0.50, 117.15),
    "Makassar": (-5.14, 119.43),
    "Manado": (1.47, 124.84),
    "Kendari": (-3.99, 122.51),
    "Palu": (-0.90, 119.83),
}
DEFAULT_COORDINATE = (-2.0, 118.0)

BRANCHES_PER_AREA = (8, 20)
VOLUME_THRESHOLDS = (0.2, 0.7)
STATUS_THRESHOLDS = (0.35, 0.7)
AREA_JITTER_DEG = 0.05
BRANCH_JITTER_DEG = 0.02


@dataclass(frozen=True)
class Coordinate:
    longitude: float
    latitude: float


@dataclass(frozen=True)
class Branch:
    id: str
    code: str
    name: str
    area_id: str
    region_id: str
    volume_class: str
    status: str
    coordinates: Optional[Coordinate] = None


@dataclass(frozen=True)
class Area:
    id: str
    name: str
    region_id: str
    branches: Tuple[Branch, ...]
    coordinates: Optional[Coordinate] = None

    @property
    def branch_ids(self) -> List[str]:
        return [b.id for b in self.branches]


@dataclass(frozen=True)
class Region:
    id: str
    name: str
    areas: Tuple[Area, ...]
    bias: float = 0.0

    @property
    def branches(self) -> List[Branch]:
        return [b for a in self.areas for b in a.branches]


def city_coordinate(area_name: str) -> Tuple[float, float]:
    return CITY_COORDINATES.get(area_name, DEFAULT_COORDINATE)


def _volume_class(roll: float) -> str:
    high, medium = VOLUME_THRESHOLDS
    if roll < high:
        return "High"
    if roll < medium:
        return "Medium"
    return "Low"


def _status(roll: float, bias: float) -> str:
    improving, stagnant = STATUS_THRESHOLDS
    if roll < improving + bias:
        return "Improving"
    if roll < stagnant + bias:
        return "Stagnant"
    return "Declining"


def build_hierarchy(rng: SeededRandom) -> List[Region]:
    """Build the region -> area -> branch tree.

    Names and coordinates come from the static tables above; branch counts,
    volume classes, statuses and coordinate jitter are drawn from ``rng`` in
    a fixed order (area latitude, area longitude, branch count, then per
    branch: prefix, volume roll, status roll, longitude, latitude).
    """
    regions: List[Region] = []
    branch_counter = 1

    for region_idx, (region_name, bias, area_names) in enumerate(REGION_TABLE):
        region_id = f"R{region_idx + 1}"
        areas: List[Area] = []

        for area_idx, area_name in enumerate(area_names):
            area_id = f"{region_id}-A{area_idx + 1}"
            lat, lng = city_coordinate(area_name)
            area_lat = lat + rng.gaussian(0, AREA_JITTER_DEG)
            area_lng = lng + rng.gaussian(0, AREA_JITTER_DEG)

            branch_count = rng.int(*BRANCHES_PER_AREA)
            branches: List[Branch] = []
            for i in range(branch_count):
                prefix = rng.pick(BRANCH_PREFIXES)
                volume_class = _volume_class(rng.next())
                status = _status(rng.next(), bias)
                code = f"{prefix}{branch_counter:04d}"
                branch_counter += 1

                branch_lng = area_lng + rng.gaussian(0, BRANCH_JITTER_DEG)
                branch_lat = area_lat + rng.gaussian(0, BRANCH_JITTER_DEG)
                branches.append(
                    Branch(
                        id=f"{area_id}-B{i + 1}",
                        code=code,
                        name=f"{area_name} {i + 1}",
                        area_id=area_id,
                        region_id=region_id,
                        volume_class=volume_class,
                        status=status,
                        coordinates=Coordinate(longitude=branch_lng, latitude=branch_lat),
                    )
                )

            areas.append(
                Area(
                    id=area_id,
                    name=area_name,
                    region_id=region_id,
                    branches=tuple(branches),
                    coordinates=Coordinate(longitude=area_lng, latitude=area_lat),
                )
            )

        regions.append(Region(id=region_id, name=region_name, areas=tuple(areas), bias=bias))

    logger.debug("Built hierarchy: %d regions, %d branches", len(regions), branch_counter - 1)
    return regions


def flatten_areas(regions: List[Region]) -> List[Area]:
    return [a for r in regions for a in r.areas]


def flatten_branches(regions: List[Region]) -> List[Branch]:
    return [b for r in regions for a in r.areas for b in a.branches]
