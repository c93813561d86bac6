# calibu

Camera models, camera rigs and calibration-target geometry built on NumPy.

## What is in the package

- **Camera models** (`calibu.cameras`, `calibu.camera_models`). `LinearCamera`,
  `KannalaBrandtCamera` and `Rational6Camera` share the `CameraModel` interface:
  `project`, `unproject`, the Jacobians `d_project_d_ray`, `d_project_d_params` and
  `d_unproject_d_params`, the calibration matrix `K()`, `scale`, `info`, and inverse-depth
  transfer into another camera (`transfer_3d` and its derivatives). Parameters are ordered
  `(fu, fv, u0, v0, ...distortion)`. `create_camera(type_name)` builds a model from its type
  name. `Rational6Camera` raises `DerivativeUnavailableError` for the parameter Jacobians.
- **Rigs** (`calibu.rig`). `Rig` holds cameras, each carrying its pose in the rig frame as
  an `SE3`. `rig_to_coordinate_convention` returns a copy of a rig in another axis
  convention (`RDF_VISION`, `RDF_ROBOTICS` or any `SO3`).
- **XML files** (`calibu.camera_xml`). Cameras, poses and rigs are read and written in the
  `rig` / `camera` / `camera_model` / `pose` XML layout: `read_xml_rig_file`,
  `read_xml_rig_from_string`, `write_xml_rig_file`, `read_xml_camera_file`,
  `write_xml_camera_file` and their stream and element forms. Legacy type names such as
  `MVL_CAMERA_LINEAR` are translated. Unreadable documents and unknown camera types raise
  `CameraXmlError`.
- **Rectification** (`calibu.rectify`). `create_lookup_table` builds a bilinear
  `LookupTable` that remaps a camera onto a linear model and `rectify` applies it to a
  single- or multi-channel image. `create_scanline_rectified_lookup_and_cameras` scan-line
  rectifies a stereo pair and returns the new rig, the rectified extrinsics and both tables.
- **Target detection helpers.** `calibu.label.label_image` labels connected regions of a
  binary image; `calibu.conics` selects candidate regions
  (`find_candidate_conics_from_labels`), fits ellipses to an image-gradient field
  (`find_conics`, `find_ellipse`) and recovers the plane of imaged circles
  (`plane_from_conic`, `plane_from_conics`). `calibu.ransac.Ransac` is a generic RANSAC fitter.
- **Geometry** (`calibu.geometry`, `calibu.rect`, `calibu.textio`). `SO3` and `SE3` with
  `exp`, `log`, composition and inverse; `estimate_homography`; `Range`, `Rectangle` and
  `IRectangle`; and the `[ a, b; c, d ]` text form of matrices and transforms
  (`format_matrix`, `parse_matrix`, `format_se3`, `parse_se3`).

## Install

```
pip install .
```

## Example

```python
import numpy as np
from calibu.cameras import LinearCamera
from calibu.rig import Rig
from calibu.camera_xml import write_xml_rig_file, read_xml_rig_file

cam = LinearCamera(np.array([500.0, 500.0, 319.5, 239.5]), (640, 480))
pix = cam.project(np.array([0.1, -0.2, 1.0]))
ray = cam.unproject(pix)

rig = Rig()
rig.add_camera(cam)
write_xml_rig_file("cameras.xml", rig)
loaded = read_xml_rig_file("cameras.xml")
print(loaded.num_cams())
```

## What the package does not do

- It does not estimate a camera pose from 2D–3D correspondences, and it has no
  optimiser that calibrates camera parameters; it provides the models, Jacobians and
  geometry such tools would use.
- It does not compute image gradients or threshold images: `label_image` expects a binary
  image and `find_conics` expects a gradient array of shape `(height, width, 2)` supplied
  by the caller.
- XML files can only name the linear, Kannala-Brandt and rational6 models.
- It has no command-line program.

## Tests

```
pip install .[test]
pytest
```