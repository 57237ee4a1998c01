"""In-memory stand-ins for the Supabase client used by route tests"""

import copy
import itertools
import re
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

_clock = itertools.count()
_EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _timestamp() -> str:
    # strictly increasing so ordering by created_at is deterministic
    return (_EPOCH + timedelta(seconds=next(_clock))).isoformat()


def _get(row: Dict[str, Any], column: str) -> Any:
    if "->>" in column:
        column, key = column.split("->>", 1)
        value = (row.get(column) or {}).get(key)
        return None if value is None else str(value)
    return row.get(column)


def _like(value: Any, pattern: str) -> bool:
    if value is None:
        return False
    regex = ".*".join(re.escape(part) for part in pattern.split("%"))
    return re.fullmatch(regex, str(value), flags=re.IGNORECASE) is not None


def _split_top_level(expression: str) -> List[str]:
    parts, depth, current = [], 0, ""
    for char in expression:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char == "," and depth == 0:
            parts.append(current)
            current = ""
        else:
            current += char
    if current:
        parts.append(current)
    return parts


def _parse_condition(condition: str) -> Callable[[Dict[str, Any]], bool]:
    column, op, value = condition.split(".", 2)
    if op == "is":
        return lambda row: _get(row, column) is None if value == "null" else _get(row, column) == value
    if op == "in":
        options = [v.strip() for v in value.strip("()").split(",") if v.strip()]
        return lambda row: str(_get(row, column)) in options
    if op == "ilike":
        return lambda row: _like(_get(row, column), value)
    if op == "eq":
        return lambda row: str(_get(row, column)) == value
    raise ValueError(f"Unsupported or_ operator: {op}")


class FakeResult:
    def __init__(self, data: Any, count: Optional[int] = None):
        self.data = data
        self.count = count


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.action = "select"
        self.payload: Any = None
        self.on_conflict: Optional[str] = None
        self.count_mode: Optional[str] = None
        self.filters: List[Callable[[Dict[str, Any]], bool]] = []
        self.orders: List[tuple] = []
        self.limit_count: Optional[int] = None
        self.range_bounds: Optional[tuple] = None
        self._negate = False

    @property
    def rows(self) -> List[Dict[str, Any]]:
        return self.db.tables.setdefault(self.table_name, [])

    # actions
    def select(self, columns: str = "*", count: Optional[str] = None):
        self.action = "select"
        self.count_mode = count
        return self

    def insert(self, payload):
        self.action, self.payload = "insert", payload
        return self

    def update(self, payload):
        self.action, self.payload = "update", payload
        return self

    def upsert(self, payload, on_conflict: str = "id"):
        self.action, self.payload, self.on_conflict = "upsert", payload, on_conflict
        return self

    def delete(self):
        self.action = "delete"
        return self

    # filters
    @property
    def not_(self):
        self._negate = True
        return self

    def _add(self, predicate):
        if self._negate:
            self._negate = False
            self.filters.append(lambda row: not predicate(row))
        else:
            self.filters.append(predicate)
        return self

    def eq(self, column, value):
        return self._add(lambda row: _get(row, column) == value)

    def neq(self, column, value):
        return self._add(lambda row: _get(row, column) != value)

    def gt(self, column, value):
        return self._add(lambda row: _get(row, column) is not None and _get(row, column) > value)

    def gte(self, column, value):
        return self._add(lambda row: _get(row, column) is not None and _get(row, column) >= value)

    def lt(self, column, value):
        return self._add(lambda row: _get(row, column) is not None and _get(row, column) < value)

    def lte(self, column, value):
        return self._add(lambda row: _get(row, column) is not None and _get(row, column) <= value)

    def is_(self, column, value):
        if value == "null":
            return self._add(lambda row: _get(row, column) is None)
        return self._add(lambda row: _get(row, column) == value)

    def in_(self, column, values):
        options = list(values)
        return self._add(lambda row: _get(row, column) in options)

    def ilike(self, column, pattern):
        return self._add(lambda row: _like(_get(row, column), pattern))

    def contains(self, column, values):
        return self._add(lambda row: all(v in (_get(row, column) or []) for v in values))

    def overlaps(self, column, values):
        return self._add(lambda row: any(v in (_get(row, column) or []) for v in values))

    def or_(self, expression: str):
        conditions = [_parse_condition(part) for part in _split_top_level(expression)]
        return self._add(lambda row: any(condition(row) for condition in conditions))

    # modifiers
    def order(self, column, desc: bool = False):
        self.orders.append((column, desc))
        return self

    def limit(self, count: int):
        self.limit_count = count
        return self

    def range(self, start: int, end: int):
        self.range_bounds = (start, end)
        return self

    def _matching(self) -> List[Dict[str, Any]]:
        return [row for row in self.rows if all(f(row) for f in self.filters)]

    def _new_row(self, values: Dict[str, Any]) -> Dict[str, Any]:
        row = copy.deepcopy(values)
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", _timestamp())
        self.rows.append(row)
        return row

    def execute(self) -> FakeResult:
        self.db.check_failure(self.table_name, self.action)
        if self.action == "insert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            return FakeResult([copy.deepcopy(self._new_row(values)) for values in payload])
        if self.action == "upsert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            keys = [k.strip() for k in self.on_conflict.split(",")]
            saved = []
            for values in payload:
                existing = next(
                    (row for row in self.rows
                     if all(k in values and row.get(k) == values[k] for k in keys)),
                    None
                )
                if existing is not None:
                    existing.update(copy.deepcopy(values))
                    saved.append(copy.deepcopy(existing))
                else:
                    saved.append(copy.deepcopy(self._new_row(values)))
            return FakeResult(saved)
        if self.action == "update":
            matched = self._matching()
            for row in matched:
                row.update(copy.deepcopy(self.payload))
            return FakeResult(copy.deepcopy(matched))
        if self.action == "delete":
            matched = self._matching()
            self.db.tables[self.table_name] = [row for row in self.rows if row not in matched]
            return FakeResult(copy.deepcopy(matched))

        matched = self._matching()
        for column, desc in reversed(self.orders):
            matched.sort(key=lambda row: (_get(row, column) is None, _get(row, column) if _get(row, column) is not None else ""), reverse=desc)
        total = len(matched) if self.count_mode else None
        if self.range_bounds is not None:
            start, end = self.range_bounds
            matched = matched[start:end + 1]
        if self.limit_count is not None:
            matched = matched[:self.limit_count]
        return FakeResult(copy.deepcopy(matched), total)


class FakeRpc:
    def __init__(self, db: "FakeSupabase", name: str, params: Dict[str, Any]):
        self.db = db
        self.name = name
        self.params = params

    def execute(self) -> FakeResult:
        self.db.rpc_calls.append((self.name, self.params))
        handler = self.db.rpc_handlers.get(self.name)
        return FakeResult(handler(self.params) if handler else None)


class FakeBucket:
    def __init__(self, name: str):
        self.name = name
        self.files: Dict[str, bytes] = {}
        self.created: Dict[str, str] = {}
        self.fail_uploads = False

    def upload(self, path: str, content: bytes, options: Optional[Dict[str, Any]] = None):
        if self.fail_uploads:
            raise Exception("storage unavailable")
        if path in self.files and (options or {}).get("upsert") != "true":
            raise Exception("The resource already exists")
        self.files[path] = content
        self.created[path] = _timestamp()
        return {"path": path}

    def download(self, path: str) -> bytes:
        if path not in self.files:
            raise Exception(f"Object not found: {path}")
        return self.files[path]

    def get_public_url(self, path: str) -> str:
        return f"https://storage.test/{self.name}/{path}"

    def create_signed_url(self, path: str, expires_in: int) -> Dict[str, str]:
        if path not in self.files:
            raise Exception(f"Object not found: {path}")
        return {"signedURL": f"https://storage.test/{self.name}/{path}?token=signed"}

    def list(self, folder: str, options: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        prefix = folder.rstrip("/") + "/"
        return [
            {"name": path[len(prefix):], "created_at": self.created[path]}
            for path in self.files
            if path.startswith(prefix) and "/" not in path[len(prefix):]
        ]


class FakeStorage:
    def __init__(self):
        self.buckets: Dict[str, FakeBucket] = {}

    def from_(self, name: str) -> FakeBucket:
        return self.buckets.setdefault(name, FakeBucket(name))


class FakeSupabase:
    """Tables are plain lists of dicts keyed by table name"""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.rpc_handlers: Dict[str, Callable[[Dict[str, Any]], Any]] = {}
        self.rpc_calls: List[tuple] = []
        self.failures: Dict[tuple, str] = {}
        self.storage = FakeStorage()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: Optional[Dict[str, Any]] = None) -> FakeRpc:
        return FakeRpc(self, name, params or {})

    def seed(self, table: str, *rows: Dict[str, Any]) -> List[Dict[str, Any]]:
        query = FakeQuery(self, table)
        return [query._new_row(row) for row in rows]

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.get(table, [])

    def fail(self, table: str, action: str, message: str = "database unavailable"):
        self.failures[(table, action)] = message

    def check_failure(self, table: str, action: str):
        message = self.failures.get((table, action))
        if message:
            raise Exception(message)

    def rpc_names(self) -> List[str]:
        return [name for name, _ in self.rpc_calls]
