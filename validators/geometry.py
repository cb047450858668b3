from typing import Annotated

from pydantic import PlainSerializer, PlainValidator
from shapely.geometry import mapping
from shapely.geometry.base import BaseGeometry

from codec import DEFAULT_CODEC


def geometry_validator(value: dict | str | bytes | BaseGeometry) -> BaseGeometry:
    """
    Validate a geometry given as GeoJSON, WKT, EWKT, hex or binary WKB.
    """

    geometry = DEFAULT_CODEC.parse(value)
    if geometry is None:
        raise ValueError('Geometry must not be empty')
    return geometry


def geometry_serializer(value: BaseGeometry) -> dict:
    """
    Serialize a geometry.
    """

    return mapping(value)


GeometryValidator = PlainValidator(geometry_validator)
GeometrySerializer = PlainSerializer(geometry_serializer, return_type=dict)

GeometryField = Annotated[BaseGeometry, GeometryValidator, GeometrySerializer]
