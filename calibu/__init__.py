"""Camera models, rigs and their XML files, rectification and calibration-target geometry."""

__version__ = "0.1.0"

__all__ = [
    "geometry",
    "rect",
    "textio",
    "cameras",
    "camera_models",
    "rig",
    "camera_xml",
    "ransac",
    "rectify",
    "label",
    "conics",
]