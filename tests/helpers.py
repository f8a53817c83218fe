"""Direct database access for arranging and checking test state."""

from uniform.db.database import get_db_session, typed_text

PASSWORD = "secret123"


def insert(table: str, values: dict, id_column: str, **bind_types) -> int:
    columns = ", ".join(values)
    placeholders = ", ".join(f":{column}" for column in values)
    with get_db_session() as db:
        return db.execute(
            typed_text(
                f"INSERT INTO {table} ({columns}) VALUES ({placeholders}) RETURNING {id_column}",
                **bind_types
            ),
            values
        ).scalar()


def execute(sql: str, **params) -> None:
    with get_db_session() as db:
        db.execute(typed_text(sql), params)


def fetch(sql: str, **params) -> list:
    with get_db_session() as db:
        result = db.execute(typed_text(sql), params)
        return [dict(row._mapping) for row in result]
