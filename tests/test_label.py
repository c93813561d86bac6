import numpy as np

from calibu.label import PixelClass, label_image, root_label
from calibu.rect import IRectangle


def _roots(classes):
    return [i for i, pc in enumerate(classes) if pc.equiv == -1]


def test_u_shape_merges_into_one_region():
    image = np.array([[1, 0, 1], [1, 0, 1], [1, 1, 1]], dtype=np.uint8)
    result = label_image(image, 1)
    roots = _roots(result.classes)
    assert len(roots) == 1
    root = result.classes[roots[0]]
    assert root.size == int((image == 1).sum())
    assert root.bbox == IRectangle(0, 0, 2, 2)


def test_separate_regions_stay_separate():
    image = np.zeros((6, 6), dtype=np.uint8)
    image[0:2, 0:2] = 255
    image[4:6, 3:6] = 255
    result = label_image(image, 255)
    roots = _roots(result.classes)
    assert len(roots) == 2
    assert sorted(result.classes[r].size for r in roots) == [4, 6]


def test_unmatched_pixels_stay_unlabelled():
    image = np.zeros((4, 4), dtype=np.uint8)
    result = label_image(image, 255)
    assert result.classes == []
    assert (result.label_map == -1).all()


def test_every_labelled_pixel_lies_in_its_root_bbox():
    rng = np.random.default_rng(3)
    image = (rng.random((12, 12)) > 0.5).astype(np.uint8)
    result = label_image(image, 1)
    total = 0
    for r in range(12):
        for c in range(12):
            if image[r, c] == 1:
                root = root_label(result.classes, int(result.label_map[r, c]))
                assert root >= 0
                assert result.classes[root].bbox.contains_point(c, r)
            else:
                assert result.label_map[r, c] == -1
    total = sum(result.classes[i].size for i in _roots(result.classes))
    assert total == int(image.sum())


def test_root_label_follows_links_and_passes_negative():
    labels = [PixelClass(-1), PixelClass(0), PixelClass(1)]
    assert root_label(labels, 2) == 0
    assert root_label(labels, -1) == -1


def test_rejects_non_2d_image():
    import pytest

    with pytest.raises(ValueError):
        label_image(np.zeros((2, 2, 3)), 0)