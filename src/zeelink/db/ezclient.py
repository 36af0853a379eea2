"""Typed data-access client shared by the domain services.

`EzClient` turns a small set of declarative descriptors (predicates, ordering,
pagination and field selection with nested relations) into SQLAlchemy queries
and hands back plain dictionaries. Services never build SQL themselves; they
describe what they want by table name:

    client.find(
        "posts",
        page_number=2,
        page_size=10,
        args=QueryArgs(where=eq("site_id", 1), order_by=[OrderBy("created_at", "desc")]),
        fields=["id", "content", Relation("author", ["id", "nickname"])],
    )
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal, Union

from sqlalchemy import and_, delete, false, func, or_, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from zeelink.core.errors import ValidationError
from zeelink.db.session import Base
from zeelink.models import (
    Post,
    PostComment,
    PostTopic,
    Site,
    SiteBanner,
    SiteQuicklink,
    Topic,
    User,
)

__all__ = [
    "TABLES",
    "AllOf",
    "AnyOf",
    "Condition",
    "EzClient",
    "FindResult",
    "MutationResult",
    "OrderBy",
    "QueryArgs",
    "QueryError",
    "Related",
    "Relation",
    "all_of",
    "any_of",
    "eq",
    "gt",
    "gte",
    "ilike",
    "in_",
    "is_null",
    "like",
    "lt",
    "lte",
    "neq",
    "nin",
    "related",
]

TABLES: dict[str, type[Base]] = {
    "users": User,
    "sites": Site,
    "site_banners": SiteBanner,
    "site_quicklinks": SiteQuicklink,
    "topics": Topic,
    "posts": Post,
    "post_topics": PostTopic,
    "post_comments": PostComment,
}


class QueryError(ValidationError):
    """Raised when a descriptor names an unknown table, column or relation."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------

Operator = Literal["eq", "neq", "in", "nin", "like", "ilike", "gt", "gte", "lt", "lte", "is_null"]


@dataclass(frozen=True)
class Condition:
    """Comparison of a single column against a value."""

    field: str
    op: Operator
    value: Any = None


@dataclass(frozen=True)
class AnyOf:
    """Disjunction of predicates."""

    predicates: tuple[Predicate, ...]


@dataclass(frozen=True)
class AllOf:
    """Conjunction of predicates."""

    predicates: tuple[Predicate, ...]


@dataclass(frozen=True)
class Related:
    """EXISTS over a relation, optionally filtered by a predicate on the target."""

    relation: str
    predicate: Predicate | None = None


Predicate = Union[Condition, AnyOf, AllOf, Related]
Where = Union[Predicate, Sequence[Predicate], None]


@dataclass(frozen=True)
class OrderBy:
    field: str
    direction: Literal["asc", "desc"] = "asc"

    def __post_init__(self) -> None:
        if self.direction not in ("asc", "desc"):
            raise QueryError(f"不支持的排序方向: {self.direction}")


@dataclass(frozen=True)
class Relation:
    """Nested field selection for a relationship."""

    name: str
    fields: Sequence[FieldSpec] = ()
    order_by: Sequence[OrderBy] = ()


FieldSpec = Union[str, Relation]


@dataclass
class QueryArgs:
    where: Where = None
    order_by: Sequence[OrderBy] = ()
    limit: int | None = None
    offset: int | None = None


@dataclass
class FindResult:
    """One page of rows plus the total row count for the predicate."""

    datas: list[dict[str, Any]]
    count: int

    @property
    def aggregate(self) -> dict[str, int]:
        return {"count": self.count}


@dataclass
class MutationResult:
    affected_rows: int
    returning: list[dict[str, Any]] = field(default_factory=list)


def eq(field_name: str, value: Any) -> Condition:
    return Condition(field_name, "eq", value)


def neq(field_name: str, value: Any) -> Condition:
    return Condition(field_name, "neq", value)


def in_(field_name: str, values: Sequence[Any]) -> Condition:
    return Condition(field_name, "in", tuple(values))


def nin(field_name: str, values: Sequence[Any]) -> Condition:
    return Condition(field_name, "nin", tuple(values))


LIKE_ESCAPE = "\\"


def escape_like(text: str) -> str:
    """Escape `%` and `_` so `text` matches literally inside a LIKE pattern."""
    return text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2).replace("%", LIKE_ESCAPE + "%").replace("_", LIKE_ESCAPE + "_")


def contains(field_name: str, text: str, case_sensitive: bool = False) -> Condition:
    pattern = f"%{escape_like(text)}%"
    return like(field_name, pattern) if case_sensitive else ilike(field_name, pattern)


def like(field_name: str, pattern: str) -> Condition:
    return Condition(field_name, "like", pattern)


def ilike(field_name: str, pattern: str) -> Condition:
    return Condition(field_name, "ilike", pattern)


def gt(field_name: str, value: Any) -> Condition:
    return Condition(field_name, "gt", value)


def gte(field_name: str, value: Any) -> Condition:
    return Condition(field_name, "gte", value)


def lt(field_name: str, value: Any) -> Condition:
    return Condition(field_name, "lt", value)


def lte(field_name: str, value: Any) -> Condition:
    return Condition(field_name, "lte", value)


def is_null(field_name: str, value: bool = True) -> Condition:
    return Condition(field_name, "is_null", value)


def any_of(*predicates: Predicate) -> AnyOf:
    return AnyOf(tuple(predicates))


def all_of(*predicates: Predicate) -> AllOf:
    return AllOf(tuple(predicates))


def related(relation: str, predicate: Predicate | None = None) -> Related:
    return Related(relation, predicate)


_OPERATORS: dict[str, Callable[[Any, Any], Any]] = {
    "eq": lambda column, value: column == value,
    "neq": lambda column, value: column != value,
    "in": lambda column, value: column.in_(list(value)),
    "nin": lambda column, value: column.not_in(list(value)),
    "like": lambda column, value: column.like(value, escape=LIKE_ESCAPE),
    "ilike": lambda column, value: column.ilike(value, escape=LIKE_ESCAPE),
    "gt": lambda column, value: column > value,
    "gte": lambda column, value: column >= value,
    "lt": lambda column, value: column < value,
    "lte": lambda column, value: column <= value,
    "is_null": lambda column, value: column.is_(None) if value else column.is_not(None),
}


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class EzClient:
    """Execute table-level queries and mutations on a SQLAlchemy session.

    Every mutation commits on its own. Errors from the database propagate to
    the caller after the session has been rolled back.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    # -- reads --------------------------------------------------------------

    def query(
        self,
        name: str,
        args: QueryArgs | None = None,
        fields: Sequence[FieldSpec] = (),
    ) -> list[dict[str, Any]]:
        """Return every row matching `args`, shaped by `fields`."""
        model = _model(name)
        args = args or QueryArgs()
        _check_fields(model, fields)
        stmt = self._select(model, args.where, args.order_by)
        if args.limit is not None:
            stmt = stmt.limit(args.limit)
        if args.offset is not None:
            stmt = stmt.offset(args.offset)
        stmt = stmt.options(*_loader_options(model, fields)).execution_options(populate_existing=True)
        rows = self.session.scalars(stmt).all()
        return [_shape(row, fields) for row in rows]

    def query_first(
        self,
        name: str,
        args: QueryArgs | None = None,
        fields: Sequence[FieldSpec] = (),
    ) -> dict[str, Any] | None:
        """Return the first matching row or None."""
        args = args or QueryArgs()
        limited = QueryArgs(where=args.where, order_by=args.order_by, limit=1, offset=args.offset)
        rows = self.query(name, limited, fields)
        return rows[0] if rows else None

    def find(
        self,
        name: str,
        page_number: int = 1,
        page_size: int = 10,
        args: QueryArgs | None = None,
        fields: Sequence[FieldSpec] = (),
    ) -> FindResult:
        """Return one 1-indexed page of rows together with the total count.

        `limit` and `offset` on `args` are ignored; the page window wins.
        """
        if page_number < 1 or page_size < 1:
            raise QueryError("分页参数必须大于0")
        args = args or QueryArgs()
        total = self.count(name, args.where)
        paged = QueryArgs(
            where=args.where,
            order_by=args.order_by,
            limit=page_size,
            offset=(page_number - 1) * page_size,
        )
        return FindResult(datas=self.query(name, paged, fields), count=total)

    def count(self, name: str, where: Where = None) -> int:
        model = _model(name)
        stmt = select(func.count()).select_from(model)
        criterion = _criterion(model, where)
        if criterion is not None:
            stmt = stmt.where(criterion)
        return int(self.session.scalar(stmt) or 0)

    # -- writes -------------------------------------------------------------

    def insert(
        self,
        name: str,
        objects: Sequence[Mapping[str, Any]],
        returning_fields: Sequence[FieldSpec] = (),
    ) -> MutationResult:
        model = _model(name)
        _check_fields(model, returning_fields)
        instances = [model(**_column_values(model, obj)) for obj in objects]
        if not instances:
            return MutationResult(affected_rows=0)
        self.session.add_all(instances)
        self._commit()
        return MutationResult(
            affected_rows=len(instances),
            returning=[_shape(instance, returning_fields) for instance in instances],
        )

    def insert_one(
        self,
        name: str,
        obj: Mapping[str, Any],
        returning_fields: Sequence[FieldSpec] = (),
    ) -> dict[str, Any]:
        result = self.insert(name, [obj], returning_fields)
        return result.returning[0]

    def update(
        self,
        name: str,
        where: Where,
        set_: Mapping[str, Any],
        returning_fields: Sequence[FieldSpec] = (),
    ) -> MutationResult:
        """Apply `set_` to every matching row through the ORM so `onupdate` fires."""
        model = _model(name)
        criterion = _criterion(model, where)
        if criterion is None:
            raise QueryError("更新操作必须指定条件")
        _check_fields(model, returning_fields)
        values = _column_values(model, set_)
        pk = _primary_key(model)
        if pk.key in values:
            raise QueryError("主键不可修改")
        stmt = select(model).where(criterion).order_by(pk).execution_options(populate_existing=True)
        rows = self.session.scalars(stmt).all()
        for row in rows:
            for key, value in values.items():
                setattr(row, key, value)
        self._commit()
        return MutationResult(
            affected_rows=len(rows),
            returning=[_shape(row, returning_fields) for row in rows],
        )

    def delete(
        self,
        name: str,
        where: Where,
        returning_fields: Sequence[FieldSpec] = (),
    ) -> MutationResult:
        model = _model(name)
        criterion = _criterion(model, where)
        if criterion is None:
            raise QueryError("删除操作必须指定条件")
        _check_fields(model, returning_fields)
        pk = _primary_key(model)
        stmt = select(model).where(criterion).order_by(pk)
        stmt = stmt.options(*_loader_options(model, returning_fields)).execution_options(
            populate_existing=True
        )
        rows = self.session.scalars(stmt).all()
        if not rows:
            return MutationResult(affected_rows=0)
        returning = [_shape(row, returning_fields) for row in rows]
        ids = [getattr(row, pk.key) for row in rows]
        self.session.execute(
            delete(model).where(pk.in_(ids)).execution_options(synchronize_session=False)
        )
        for row in rows:
            self.session.expunge(row)
        self._commit()
        return MutationResult(affected_rows=len(rows), returning=returning)

    # -- internals ----------------------------------------------------------

    def _select(self, model: type[Base], where: Where, order_by: Sequence[OrderBy]) -> Any:
        stmt = select(model)
        criterion = _criterion(model, where)
        if criterion is not None:
            stmt = stmt.where(criterion)
        return stmt.order_by(*_ordering(model, order_by))

    def _commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise


def _model(name: str) -> type[Base]:
    try:
        return TABLES[name]
    except KeyError:
        raise QueryError(f"未知的数据表: {name}") from None


def _column(model: type[Base], name: str) -> Any:
    columns = sa_inspect(model).columns
    if name not in columns:
        raise QueryError(f"未知的字段: {model.__tablename__}.{name}")
    return getattr(model, name)


def _relationship(model: type[Base], name: str) -> Any:
    relationships = sa_inspect(model).relationships
    if name not in relationships:
        raise QueryError(f"未知的关联: {model.__tablename__}.{name}")
    return relationships[name]


def _primary_key(model: type[Base]) -> Any:
    return getattr(model, sa_inspect(model).primary_key[0].key)


def _column_values(model: type[Base], values: Mapping[str, Any]) -> dict[str, Any]:
    for key in values:
        _column(model, key)
    return dict(values)


def _compile(model: type[Base], predicate: Predicate) -> Any:
    if isinstance(predicate, Condition):
        column = _column(model, predicate.field)
        if predicate.op not in _OPERATORS:
            raise QueryError(f"不支持的操作符: {predicate.op}")
        return _OPERATORS[predicate.op](column, predicate.value)
    if isinstance(predicate, AnyOf):
        if not predicate.predicates:
            return false()
        return or_(*(_compile(model, p) for p in predicate.predicates))
    if isinstance(predicate, AllOf):
        if not predicate.predicates:
            raise QueryError("空的组合条件")
        return and_(*(_compile(model, p) for p in predicate.predicates))
    if isinstance(predicate, Related):
        rel = _relationship(model, predicate.relation)
        attr = getattr(model, predicate.relation)
        inner = None
        if predicate.predicate is not None:
            inner = _compile(rel.mapper.class_, predicate.predicate)
        exists = attr.any if rel.uselist else attr.has
        return exists(inner) if inner is not None else exists()
    raise QueryError(f"无法识别的查询条件: {predicate!r}")


def _criterion(model: type[Base], where: Where) -> Any:
    if where is None:
        return None
    if isinstance(where, (Condition, AnyOf, AllOf, Related)):
        return _compile(model, where)
    clauses = [_compile(model, predicate) for predicate in where]
    if not clauses:
        return None
    return and_(*clauses)


def _ordering(model: type[Base], order_by: Sequence[OrderBy]) -> list[Any]:
    pk = _primary_key(model)
    clauses = []
    for order in order_by:
        column = _column(model, order.field)
        clauses.append(column.desc() if order.direction == "desc" else column.asc())
    if not any(order.field == pk.key for order in order_by):
        # Tie-breaker follows the last requested direction.
        last = order_by[-1].direction if order_by else "asc"
        clauses.append(pk.desc() if last == "desc" else pk.asc())
    return clauses


def _check_fields(model: type[Base], fields: Sequence[FieldSpec]) -> None:
    for spec in fields:
        if isinstance(spec, Relation):
            target = _relationship(model, spec.name).mapper.class_
            _check_fields(target, spec.fields)
            for order in spec.order_by:
                _column(target, order.field)
        else:
            _column(model, spec)


def _loader_options(model: type[Base], fields: Sequence[FieldSpec]) -> list[Any]:
    options = []
    for spec in fields:
        if not isinstance(spec, Relation):
            continue
        target = _relationship(model, spec.name).mapper.class_
        loader = selectinload(getattr(model, spec.name))
        nested = _loader_options(target, spec.fields)
        if nested:
            loader = loader.options(*nested)
        options.append(loader)
    return options


def _sort_key(value: Any) -> tuple[bool, Any]:
    return (value is None, value)


def _sort_children(items: list[Any], order_by: Sequence[OrderBy]) -> list[Any]:
    if not items:
        return items
    pk_key = sa_inspect(type(items[0])).primary_key[0].key
    items.sort(key=lambda item: getattr(item, pk_key))
    for order in reversed(order_by):
        items.sort(
            key=lambda item, name=order.field: _sort_key(getattr(item, name)),
            reverse=order.direction == "desc",
        )
    return items


def _shape(obj: Any, fields: Sequence[FieldSpec]) -> dict[str, Any]:
    mapper = sa_inspect(type(obj))
    if not fields:
        return {attr.key: getattr(obj, attr.key) for attr in mapper.column_attrs}
    row: dict[str, Any] = {}
    for spec in fields:
        if isinstance(spec, Relation):
            rel = mapper.relationships[spec.name]
            value = getattr(obj, spec.name)
            if rel.uselist:
                children = _sort_children(list(value), spec.order_by)
                row[spec.name] = [_shape(child, spec.fields) for child in children]
            else:
                row[spec.name] = _shape(value, spec.fields) if value is not None else None
        else:
            row[spec] = getattr(obj, spec)
    return row
