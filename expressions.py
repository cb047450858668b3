from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.elements import ColumnElement
from sqlalchemy.sql.visitors import InternalTraversal

from sql_emitter import spatial_emitter_for


class GeometryConstructor(ColumnElement):
    """
    ``ST_GeomFromText``/``ST_GeomFromWKB`` around a payload expression.

    The constructor function and the axis-order hint are chosen at compile time by
    the dialect's emitter, unless ``text`` forces the WKT constructor.
    """

    __visit_name__ = 'geometry_constructor'

    _traverse_internals = [
        ('payload', InternalTraversal.dp_clauseelement),
        ('srid', InternalTraversal.dp_plain_obj),
        ('text', InternalTraversal.dp_plain_obj),
        ('type', InternalTraversal.dp_type),
    ]

    def __init__(self, payload: ColumnElement, srid: int, *, text: bool = False, type_):
        self.payload = payload
        self.srid = srid
        self.text = text
        self.type = type_


@compiles(GeometryConstructor)
def _compile_geometry_constructor(element: GeometryConstructor, compiler, **kw):
    emitter = spatial_emitter_for(compiler.dialect)
    payload_sql = compiler.process(element.payload, **kw)
    wkb = not element.text and emitter.uses_wkb(element.srid)
    return emitter.constructor_sql(payload_sql, element.srid, wkb=wkb)
