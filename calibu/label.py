"""Connected-component labelling of binary images."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple

import numpy as np

from calibu.rect import IRectangle


@dataclass
class PixelClass:
    """One labelled region.

    ``equiv`` is the label this region was merged into, or -1 for a root region.
    ``size`` counts pixels and is only complete on root regions.
    """

    equiv: int = -1
    bbox: IRectangle = field(default_factory=IRectangle)
    size: int = 1


class LabelResult(NamedTuple):
    label_map: np.ndarray
    classes: list[PixelClass]


def root_label(labels: list[PixelClass], label: int) -> int:
    """Follow merge links from ``label`` to its root region; negative labels pass through."""
    if label >= 0:
        while labels[label].equiv >= 0:
            label = labels[label].equiv
    return label


def _assign(image, label_map, labels, r: int, c: int, passval) -> None:
    if image[r, c] != passval:
        return
    lup = root_label(labels, int(label_map[r - 1, c])) if r > 0 else -1
    lleft = root_label(labels, int(label_map[r, c - 1])) if c > 0 else -1

    if lup >= 0 and lleft >= 0 and lup != lleft:
        label_map[r, c] = lup
        labels[lup].size += labels[lleft].size + 1
        labels[lleft].equiv = lup
        labels[lup].bbox.include(labels[lleft].bbox)
    elif lup >= 0:
        label_map[r, c] = lup
        labels[lup].size += 1
        labels[lup].bbox.insert(c, r)
    elif lleft >= 0:
        label_map[r, c] = lleft
        labels[lleft].size += 1
        labels[lleft].bbox.insert(c, r)
    else:
        labels.append(PixelClass(-1, IRectangle(c, r, c, r), 1))
        label_map[r, c] = len(labels) - 1


def label_image(image, passval) -> LabelResult:
    """Label the 4-connected regions of pixels equal to ``passval``.

    Pixels are visited in growing diagonal shells from the top-left corner.
    Returns the per-pixel label map (-1 where unlabelled) and the region list.
    """
    img = np.asarray(image)
    if img.ndim != 2:
        raise ValueError("image must be two-dimensional")
    h, w = img.shape
    label_map = np.full((h, w), -1, dtype=np.int32)
    labels: list[PixelClass] = []

    for d in range(max(w, h)):
        if d < w:
            for r in range(min(d, h - 1)):
                _assign(img, label_map, labels, r, d, passval)
        if d < h:
            for c in range(min(d, w - 1) + 1):
                _assign(img, label_map, labels, d, c, passval)

    return LabelResult(label_map, labels)