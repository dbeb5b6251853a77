from __future__ import annotations

from uuid import uuid4

from camptrack.domain import rules
from camptrack.domain.models import Department, Person
from camptrack.store.sqlite import SqliteStore


def add_person(
    store: SqliteStore,
    name: str,
    email: str,
    phone: str | None = None,
    avatar: str | None = None,
    person_id: str | None = None,
) -> Person:
    rules.require(name, "name")
    rules.require(email, "email")
    person = Person(
        person_id=person_id or str(uuid4()),
        name=name.strip(),
        email=email.strip(),
        phone=phone,
        avatar=avatar,
    )
    store.execute(
        "INSERT INTO people (person_id, name, email, phone, avatar) VALUES (?, ?, ?, ?, ?)",
        (person.person_id, person.name, person.email, person.phone, person.avatar),
    )
    return person


def get_person(store: SqliteStore, person_id: str | None) -> Person | None:
    if not person_id:
        return None
    row = store.fetch_one("SELECT * FROM people WHERE person_id = ?", (person_id,))
    if row is None:
        return None
    return Person(
        person_id=row["person_id"],
        name=row["name"],
        email=row["email"],
        phone=row["phone"],
        avatar=row["avatar"],
    )


def list_people(store: SqliteStore) -> list[Person]:
    rows = store.fetch_all("SELECT * FROM people ORDER BY name ASC")
    return [
        Person(
            person_id=row["person_id"],
            name=row["name"],
            email=row["email"],
            phone=row["phone"],
            avatar=row["avatar"],
        )
        for row in rows
    ]


def add_department(store: SqliteStore, department_id: str, name: str) -> Department:
    rules.require(department_id, "department id")
    rules.require(name, "department name")
    store.execute(
        "INSERT INTO departments (department_id, name) VALUES (?, ?) "
        "ON CONFLICT(department_id) DO UPDATE SET name=excluded.name",
        (department_id, name),
    )
    return Department(department_id=department_id, name=name)


def get_department(store: SqliteStore, department_id: str | None) -> Department | None:
    if not department_id:
        return None
    row = store.fetch_one(
        "SELECT department_id, name FROM departments WHERE department_id = ?", (department_id,)
    )
    if row is None:
        return None
    return Department(department_id=row["department_id"], name=row["name"])
