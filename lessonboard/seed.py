from __future__ import annotations

from .extensions import db
from .models import ClassGroup, Employee, Facility, Room


def seed_data() -> int:
    """Insert sample rosters when the database is empty; return the rows created."""

    if Employee.query.count():
        return 0

    employees = [
        Employee(full_name="Nguyen Thi Lan", position="Giáo viên", email="lan.nguyen@example.com"),
        Employee(full_name="Tran Van Minh", position="Giáo viên", email="minh.tran@example.com"),
        Employee(full_name="Emily Carter", position="Teacher", email="emily.carter@example.com"),
        Employee(full_name="Le Thu Ha", position="Trợ giảng", email="ha.le@example.com"),
        Employee(full_name="Pham Quoc Bao", position="Teaching Assistant", email="bao.pham@example.com"),
    ]

    central = Facility(name="Central Campus")
    central.rooms.extend([Room(name="Room 101"), Room(name="Room 102"), Room(name="Lab A")])
    riverside = Facility(name="Riverside")
    riverside.rooms.extend([Room(name="Room 1"), Room(name="Room 2")])

    classes = [
        ClassGroup(class_name="GS12", program_type="GrapeSEED", unit="U10", data={"unit": "U10"}),
        ClassGroup(class_name="GS07", program_type="GrapeSEED", unit="U3", data={"unit": "U3"}),
        ClassGroup(class_name="IELTS-A", program_type="IELTS", unit=None, data={}),
    ]

    facilities = [central, riverside]
    db.session.add_all([*employees, *facilities, *classes])
    db.session.commit()
    rooms = sum(len(facility.rooms) for facility in facilities)
    return len(employees) + len(facilities) + rooms + len(classes)
