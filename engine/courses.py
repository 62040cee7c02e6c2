# engine/courses.py
"""The three courses served by the quiz and the modules each one contains."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel

DEFAULT_COURSE = "statics"


class CourseModule(BaseModel):
    id: int
    title_fr: str
    competencies: List[str]


class Course(BaseModel):
    id: str
    code: str
    short_title: str
    modules: List[CourseModule]


COURSES: List[Course] = [
    Course(
        id="statics",
        code="203-4A3-RA",
        short_title="Statique",
        modules=[
            CourseModule(
                id=1,
                title_fr="Bases mathématiques",
                competencies=["trigonometry", "vectors", "decomposition", "cross-product"],
            ),
            CourseModule(
                id=2,
                title_fr="Équilibre d'un point matériel",
                competencies=["dcl", "equilibrium-2d", "resultant", "equilibrant", "two-force-member"],
            ),
            CourseModule(
                id=3,
                title_fr="Équilibre d'un corps rigide",
                competencies=["moment", "lever-arm", "couple", "sum-forces", "sum-moments", "supports"],
            ),
            CourseModule(
                id=4,
                title_fr="Équilibre des structures",
                competencies=["truss-nodes", "truss-sections", "frame", "internal-forces"],
            ),
            CourseModule(
                id=5,
                title_fr="Résistance des matériaux",
                competencies=["stress", "strain", "youngs-modulus", "safety-factor", "stress-strain-diagram"],
            ),
        ],
    ),
    Course(
        id="kinematics",
        code="203-FBC-03",
        short_title="Cinématique",
        modules=[
            CourseModule(
                id=1,
                title_fr="Mouvement 1D",
                competencies=["displacement", "velocity", "acceleration", "mru", "mrua", "free-fall"],
            ),
            CourseModule(
                id=2,
                title_fr="Mouvement 2D",
                competencies=["projectile", "planar-motion", "circular-motion", "relative-motion"],
            ),
            CourseModule(
                id=3,
                title_fr="Rotation",
                competencies=[
                    "angular-parameters",
                    "angular-acceleration",
                    "speed-transmission",
                    "centripetal",
                    "centrifugal",
                ],
            ),
            CourseModule(
                id=4,
                title_fr="Machines",
                competencies=["feed-rate", "cutting-speed", "joints", "indexing", "planetary-gear"],
            ),
        ],
    ),
    Course(
        id="waves_modern",
        code="203-SN3-RE",
        short_title="Ondes & Moderne",
        modules=[
            CourseModule(
                id=1,
                title_fr="Oscillations et ondes mécaniques",
                competencies=[
                    "shm",
                    "wave-energy",
                    "damping",
                    "resonance",
                    "superposition",
                    "interference",
                    "standing-waves",
                    "sound",
                    "doppler",
                ],
            ),
            CourseModule(
                id=2,
                title_fr="Ondes électromagnétiques",
                competencies=[
                    "em-spectrum",
                    "polarization",
                    "malus",
                    "refraction",
                    "dispersion",
                    "huygens",
                    "young",
                    "thin-films",
                    "diffraction",
                    "gratings",
                ],
            ),
            CourseModule(
                id=3,
                title_fr="Physique moderne",
                competencies=[
                    "relativity",
                    "photon",
                    "blackbody",
                    "photoelectric",
                    "compton",
                    "wave-particle",
                    "de-broglie",
                    "heisenberg",
                    "schrodinger",
                    "quantum-numbers",
                    "nuclear",
                    "radioactivity",
                ],
            ),
        ],
    ),
]

_BY_ID: Dict[str, Course] = {c.id: c for c in COURSES}


def get_course(course_id: str) -> Optional[Course]:
    return _BY_ID.get(course_id)


def module_ids_for_course(course_id: str) -> List[int]:
    course = get_course(course_id)
    return [m.id for m in course.modules] if course else []
