import pytest
from conftest import make_attendance, make_student

from errors import (
    DuplicateRollNumberError, IntegrityError, InvalidRollNumberError, RoleChangeError, UnknownUserError,
)
from models import AttendanceRecord, Role, roll_key


def roll_keys(store):
    return [roll_key(u.roll_number) for u in store.users()]


def test_imported_student_skeleton(empty_store, settings):
    item = empty_store.build_imported_student(
        make_student("B", year="2", section="A", total_fees=60000, paid_fees=10000,
                     is_lateral_entry=True, email="b@x.in"),
        "25KP4A0401",
    )
    user, data = item.user, item.data
    assert user.role == Role.STUDENT
    assert user.password == settings.default_password
    assert user.is_lateral_entry is True
    assert data.user_id == user.id

    assert list(data.fees) == ["year2"]
    inst1, inst2 = data.fees["year2"].installment1, data.fees["year2"].installment2
    assert (inst1.total, inst1.paid, inst1.due_date, inst1.status) == (30000, 10000, "2024-08-15", "Due")
    assert (inst2.total, inst2.paid, inst2.due_date, inst2.status) == (30000, 0, "2025-02-15", "Due")

    assert data.year2_1 is not None and data.year2_1.subjects == []
    assert data.year1_1 is None and data.year2_2 is None
    assert data.current_year == 2


def test_default_fee_split(empty_store, settings):
    data = empty_store.build_imported_student(make_student(), "X1").data
    assert data.fees["year1"].installment1.total == settings.default_total_fees / 2


def test_commit_students_lands_whole_batch(empty_store):
    batch = [empty_store.build_imported_student(make_student(n), f"R{n}") for n in "ABC"]
    assert empty_store.commit_students(batch) == 3
    assert len(empty_store.users()) == 3
    assert {sd.user_id for sd in empty_store.student_data()} == {i.user.id for i in batch}


def test_commit_students_all_or_nothing(store):
    before_users, before_data = store.snapshot()
    batch = [
        store.build_imported_student(make_student("A"), "NEW01"),
        store.build_imported_student(make_student("B"), "24kp1a0401"),
    ]
    with pytest.raises(IntegrityError):
        store.commit_students(batch)
    assert store.snapshot() == (before_users, before_data)


def test_commit_students_rejects_batch_internal_duplicates(empty_store):
    batch = [empty_store.build_imported_student(make_student(n), "SAME") for n in "AB"]
    with pytest.raises(IntegrityError):
        empty_store.commit_students(batch)
    assert empty_store.users() == []


def test_commit_attendance_replaces_case_insensitively(store):
    applied = store.commit_attendance([make_attendance(month="january", present=21)])
    assert applied == 1
    records = store.get_student_data(1).monthly_attendance
    assert records == [AttendanceRecord("january", 2024, 21, 22)]


def test_commit_attendance_is_idempotent(store):
    batch = [make_attendance(month="February", present=15, total=20), make_attendance(month="March")]
    store.commit_attendance(batch)
    once = store.get_student_data(1).monthly_attendance
    store.commit_attendance(batch)
    assert store.get_student_data(1).monthly_attendance == once
    assert len(once) == 3


def test_commit_attendance_skips_unknown(store):
    assert store.commit_attendance([make_attendance(roll="NOPE")]) == 0


def test_snapshots_are_copies(store):
    users = store.users()
    users[0].name = "changed"
    store.get_student_data(1).monthly_attendance.clear()
    assert store.users()[0].name != "changed"
    assert len(store.get_student_data(1).monthly_attendance) == 1


def test_add_student_enforces_unique_roll(store):
    with pytest.raises(DuplicateRollNumberError):
        store.add_student("Dup", "24kp1a0401", "ECE", 1, "A", "pw")
    item = store.add_student("New", "24kp1a0455", "ECE", 1, "A", "pw")
    assert item.user.roll_number == "24KP1A0455"
    assert item.data.fees["year1"].installment1.total == 25000


def test_add_staff_requires_t_prefix(empty_store):
    with pytest.raises(InvalidRollNumberError):
        empty_store.add_staff("S", "1001", "pw", "ECE")
    staff = empty_store.add_staff("S", "t1001", "pw", "ECE")
    assert staff.roll_number == "T1001"
    with pytest.raises(DuplicateRollNumberError):
        empty_store.add_staff("S2", "T1001", "pw", "ECE")


def test_update_user_checks_uniqueness(store, existing_student):
    existing_student.name = "Asha K"
    store.update_user(existing_student)
    assert store.get_user(1).name == "Asha K"

    staff = store.get_user(100)
    staff.roll_number = "24KP1A0401"
    with pytest.raises(InvalidRollNumberError):
        store.update_user(staff)
    existing_student.roll_number = "T1001"
    with pytest.raises(DuplicateRollNumberError):
        store.update_user(existing_student)
    assert len(set(roll_keys(store))) == len(roll_keys(store))


def test_delete_student_cascades(store):
    store.delete_user(1)
    assert store.find_by_roll("24KP1A0401") is None
    assert store.get_student_data(1) is None
    with pytest.raises(UnknownUserError):
        store.delete_user(1)


def test_new_ids_do_not_collide(store):
    item = store.build_imported_student(make_student(), "Z1")
    assert item.user.id not in {u.id for u in store.users()}


@pytest.mark.parametrize("user_id, role", [(1, Role.SUPER_ADMIN), (1, Role.STAFF), (100, Role.STUDENT)])
def test_update_user_cannot_change_role(store, user_id, role):
    user = store.get_user(user_id)
    before = user.role
    user.role = role
    with pytest.raises(RoleChangeError):
        store.update_user(user)
    assert store.get_user(user_id).role == before
    students = {u.id for u in store.users() if u.role == Role.STUDENT}
    assert {sd.user_id for sd in store.student_data()} <= students
