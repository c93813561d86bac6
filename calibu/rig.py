"""Camera rigs and coordinate-frame conventions."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field

import numpy as np

from calibu.cameras import CameraModel
from calibu.geometry import SE3, SO3

RDF_VISION = SO3(np.eye(3))
RDF_ROBOTICS = SO3(np.array([[0.0, 0.0, 1.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]]))


@dataclass
class Rig:
    """A collection of cameras; each camera carries its pose in the rig frame."""

    cameras: list[CameraModel] = field(default_factory=list)

    def add_camera(self, cam: CameraModel) -> None:
        self.cameras.append(cam)

    def num_cams(self) -> int:
        return len(self.cameras)

    def clear(self) -> None:
        self.cameras.clear()

    def __len__(self) -> int:
        return len(self.cameras)

    def __iter__(self):
        return iter(self.cameras)


def to_coordinate_convention(t_2a_1a: SE3, r_ba: SO3) -> SE3:
    """Express a relative transform in another axis convention: R_ba * T * R_ab."""
    return SE3(r_ba * t_2a_1a.so3 * r_ba.inverse(), r_ba * t_2a_1a.translation)


def rig_to_coordinate_convention(rig: Rig, rdf: SO3) -> Rig:
    """Copy of ``rig`` with every camera pose and RDF matrix moved to convention ``rdf``."""
    result = Rig([copy.deepcopy(cam) for cam in rig.cameras])
    for cam in result.cameras:
        m = rdf * SO3(cam.rdf).inverse()
        cam.pose = to_coordinate_convention(cam.pose, m)
        cam.rdf = rdf.matrix()
    return result