"""Reading and writing cameras, poses and rigs as XML."""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from typing import TextIO
from xml.sax.saxutils import escape

import numpy as np

from calibu.camera_models import create_camera
from calibu.cameras import CameraModel
from calibu.geometry import SE3
from calibu.rig import Rig
from calibu.textio import parse_matrix

NODE_RIG = "rig"
NODE_CAM_POSE = "camera"
NODE_CAM = "camera_model"
NODE_POSE = "pose"

_LEGACY_TYPES = {
    "MVL_CAMERA_WARPED": "calibu_fu_fv_u0_v0_k1_k2",
    "MVL_CAMERA_LINEAR": "calibu_fu_fv_u0_v0",
    "MVL_CAMERA_LUT": "calibu_lut",
}

_DEFAULT_RIGHT = "[ 1; 0; 0 ]"
_DEFAULT_DOWN = "[0; 1; 0 ]"
_DEFAULT_FORWARD = "[ 0; 0; 1 ]"

_INTEGER = re.compile(r"[+-]?\d+")


class CameraXmlError(ValueError):
    """Raised when a camera, pose or rig document cannot be read."""


def camera_type(type_name: str) -> str:
    """Translate legacy camera type names to current ones."""
    return _LEGACY_TYPES.get(type_name, type_name)


def indent_str(indent: int) -> str:
    return " " * indent


def attrib_open(attrib: str) -> str:
    return f"<{attrib}>"


def attrib_close(attrib: str) -> str:
    return f"</{attrib}>"


def _attr(value) -> str:
    return escape(str(value), {'"': "&quot;"})


def _format_rows(rows, digits: int) -> str:
    body = "; ".join(", ".join(f"{float(v):.{digits}g}" for v in row) for row in rows)
    return f"[ {body} ]"


def _format_column(values, digits: int) -> str:
    return _format_rows([[v] for v in np.asarray(values, dtype=float).ravel()], digits)


def _parse_int(text: str, default: int) -> int:
    stripped = text.strip()
    if not stripped:
        return default
    match = _INTEGER.match(stripped)
    return int(match.group()) if match else 0


def _child_text(element: ET.Element, tag: str, default: str = "") -> str:
    child = element.find(tag)
    if child is None:
        return default
    return child.text or ""


def _load_root(filename) -> ET.Element:
    try:
        return ET.parse(filename).getroot()
    except (OSError, ET.ParseError) as exc:
        raise CameraXmlError(f"{exc}: '{filename}'") from exc


def _root_named(root: ET.Element, tag: str) -> ET.Element | None:
    return root if root.tag == tag else None


def write_xml_camera(out: TextIO, cam: CameraModel, indent: int = 0) -> None:
    """Write a ``camera_model`` element describing ``cam``."""
    dd1 = indent_str(indent)
    dd2 = indent_str(indent + 4)
    out.write(
        f'{dd1}<{NODE_CAM} name="{_attr(cam.name)}" index="{_attr(cam.index)}" '
        f'serialno="{_attr(cam.serial_number)}" type="{_attr(cam.type)}" '
        f'version="{_attr(cam.version)}">\n'
    )
    out.write(f"{dd2}<width> {cam.width} </width>\n")
    out.write(f"{dd2}<height> {cam.height} </height>\n")
    out.write(
        f"{dd2}<!-- Use RDF matrix, [right down forward], to define the coordinate frame convention -->\n"
    )
    rdf = np.asarray(cam.rdf, dtype=float)
    out.write(f"{dd2}<right> {_format_column(rdf[:, 0], 6)} </right>\n")
    out.write(f"{dd2}<down> {_format_column(rdf[:, 1], 6)} </down>\n")
    out.write(f"{dd2}<forward> {_format_column(rdf[:, 2], 6)} </forward>\n")
    out.write(f"{dd2}<!-- Camera parameters ordered as per type name. -->\n")
    out.write(f"{dd2}<params> {_format_column(cam.params, 7)} </params>\n")
    out.write(f"{dd1}{attrib_close(NODE_CAM)}\n")


def write_xml_camera_file(filename, cam: CameraModel) -> None:
    with open(filename, "w", encoding="utf-8") as out:
        write_xml_camera(out, cam, 0)


def read_xml_camera(element: ET.Element) -> CameraModel:
    """Build a camera from a ``camera_model`` element."""
    type_name = camera_type(element.get("type", ""))
    try:
        cam = create_camera(type_name)
    except ValueError as exc:
        raise CameraXmlError(f"unknown camera type {type_name!r}") from exc

    cam.version = _parse_int(element.get("version", ""), 0)
    cam.index = _parse_int(element.get("index", ""), 0)
    cam.serial_number = _parse_int(element.get("serialno", ""), -1)
    cam.params = parse_matrix(_child_text(element, "params"), cam.num_params, 1, cam.params).ravel()
    cam.set_image_dimensions(
        _parse_int(_child_text(element, "width"), 0),
        _parse_int(_child_text(element, "height"), 0),
    )
    cam.name = element.get("name", "")
    cam.type = type_name
    columns = [
        parse_matrix(_child_text(element, tag, default), 3, 1).ravel()
        for tag, default in (
            ("right", _DEFAULT_RIGHT),
            ("down", _DEFAULT_DOWN),
            ("forward", _DEFAULT_FORWARD),
        )
    ]
    cam.rdf = np.column_stack(columns)
    return cam


def read_xml_camera_file(filename) -> CameraModel | None:
    """Read a camera document; None if its root is not a ``camera_model`` element."""
    root = _root_named(_load_root(filename), NODE_CAM)
    return None if root is None else read_xml_camera(root)


def _write_se3(out: TextIO, t_rc: SE3, indent: int, digits: int) -> None:
    dd1 = indent_str(indent)
    dd2 = indent_str(indent + 4)
    out.write(f"{dd1}{attrib_open(NODE_POSE)}\n")
    out.write(
        f"{dd2}<!-- Camera pose. World from Camera point transfer. 3x4 matrix, "
        "in the RDF frame convention defined above -->\n"
    )
    out.write(f"{dd2}<T_wc> {_format_rows(t_rc.matrix3x4(), digits)} </T_wc>\n")
    out.write(f"{dd1}{attrib_close(NODE_POSE)}\n")


def write_xml_se3(out: TextIO, t_rc: SE3, indent: int = 0) -> None:
    """Write a ``pose`` element holding the 3x4 matrix of ``t_rc``."""
    _write_se3(out, t_rc, indent, 6)


def write_xml_se3_file(filename, t_rc: SE3) -> None:
    with open(filename, "w", encoding="utf-8") as out:
        write_xml_se3(out, t_rc)


def read_xml_se3(element: ET.Element) -> SE3:
    """Read the transform held in a ``pose`` element."""
    child = element.find("T_wc")
    if child is None:
        raise CameraXmlError("pose element has no T_wc child")
    return SE3.from_matrix(parse_matrix(child.text or "", 4, 4))


def read_xml_se3_file(filename) -> SE3:
    """Read a pose document; the identity if its root is not a ``pose`` element."""
    root = _root_named(_load_root(filename), NODE_POSE)
    return SE3() if root is None else read_xml_se3(root)


def write_xml_camera_and_transform(out: TextIO, cam: CameraModel, indent: int = 0) -> None:
    """Write a ``camera`` element holding the model and its pose."""
    dd = indent_str(indent)
    out.write(f"{dd}{attrib_open(NODE_CAM_POSE)}\n")
    write_xml_camera(out, cam, indent + 4)
    _write_se3(out, cam.pose, indent + 4, 7)
    out.write(f"{dd}{attrib_close(NODE_CAM_POSE)}\n")


def write_xml_camera_and_transform_file(filename, cam: CameraModel) -> None:
    with open(filename, "w", encoding="utf-8") as out:
        write_xml_camera_and_transform(out, cam, 0)


def write_xml_camera_and_transform_with_lut(
    out: TextIO, lut_xml: str, cam: CameraModel, indent: int = 0
) -> None:
    """As :func:`write_xml_camera_and_transform`, with a lookup-table element appended."""
    dd = indent_str(indent)
    out.write(f"{dd}{attrib_open(NODE_CAM_POSE)}\n")
    write_xml_camera(out, cam, indent + 4)
    _write_se3(out, cam.pose, indent + 4, 7)
    out.write(f"{dd}{lut_xml}\n")
    out.write(f"{dd}{attrib_close(NODE_CAM_POSE)}\n")


def read_xml_camera_and_transform(element: ET.Element) -> CameraModel:
    """Read a ``camera`` element: its model and, if present, its pose."""
    cam_element = element.find(NODE_CAM)
    if cam_element is None:
        raise CameraXmlError(f"{element.tag} element has no {NODE_CAM} child")
    cam = read_xml_camera(cam_element)
    pose_element = element.find(NODE_POSE)
    if pose_element is not None:
        cam.pose = read_xml_se3(pose_element)
    return cam


def read_xml_camera_and_transform_file(filename) -> CameraModel | None:
    root = _root_named(_load_root(filename), NODE_CAM_POSE)
    return None if root is None else read_xml_camera_and_transform(root)


def write_xml_rig(out: TextIO, rig: Rig, indent: int = 0) -> None:
    dd = indent_str(indent)
    out.write(f"{dd}{attrib_open(NODE_RIG)}\n")
    for cam in rig.cameras:
        write_xml_camera_and_transform(out, cam, indent + 4)
    out.write(f"{dd}{attrib_close(NODE_RIG)}\n")


def write_xml_rig_file(filename, rig: Rig) -> None:
    with open(filename, "w", encoding="utf-8") as out:
        write_xml_rig(out, rig, 0)


def read_xml_rig(element: ET.Element) -> Rig:
    rig = Rig()
    for child in element.findall(NODE_CAM_POSE):
        rig.add_camera(read_xml_camera_and_transform(child))
    return rig


def read_xml_rig_file(filename) -> Rig | None:
    """Read a rig document; None if its root is not a ``rig`` element."""
    root = _root_named(_load_root(filename), NODE_RIG)
    return None if root is None else read_xml_rig(root)


def read_xml_rig_from_string(text: str) -> Rig | None:
    """Read a rig from XML text; None if its root is not a ``rig`` element."""
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise CameraXmlError(f"{exc}: error parsing XML from string") from exc
    root = _root_named(root, NODE_RIG)
    return None if root is None else read_xml_rig(root)