from decimal import Decimal
from typing import Any, Dict, List

import pytest

from hospital_revenue.config import AppSettings
from hospital_revenue.finance.engine import FeeCategory
from hospital_revenue.models import Doctor, Visit


@pytest.fixture()
def settings() -> AppSettings:
    return AppSettings(_env_file=None, dashboard_password="open-sesame")


@pytest.fixture()
def doctor_rows() -> List[Dict[str, Any]]:
    return [
        {
            "id": "d-1",
            "name": "Dr. Ayesha Khan",
            "specialization": "Gynaecology",
            "opd_percentage": 70,
            "lab_percentage": 60,
            "ot_percentage": 50,
            "ultrasound_percentage": 40,
            "ecg_percentage": 30,
            "is_active": True,
        },
        {
            "id": "d-2",
            "name": "Imran Ali",
            "specialization": "Medicine",
            "opd_percentage": 50,
            "lab_percentage": 0,
            "ot_percentage": 0,
            "ultrasound_percentage": 0,
            "ecg_percentage": 0,
            "is_active": False,
        },
    ]


@pytest.fixture()
def patient_rows() -> List[Dict[str, Any]]:
    return [
        {
            "id": "p-1",
            "patient_name": "Bilal",
            "contact_number": "0300-1234567",
            "doctor_name": "Ayesha Khan",
            "opd_fee": 1000,
            "lab_fee": 500,
            "ultrasound_fee": 0,
            "ecg_fee": 0,
            "created_at": "2025-08-10T08:48:55.810664+00:00",
        },
        {
            "id": "p-2",
            "patient_name": "Sana",
            "contact_number": "0301-7654321",
            "doctor_name": "dr imran ali",
            "opd_fee": 400,
            "lab_fee": 0,
            "ultrasound_fee": 0,
            "ecg_fee": 200,
            "created_at": "2025-08-10T10:00:00+00:00",
        },
        {
            "id": "p-3",
            "patient_name": "Walk-in",
            "contact_number": "",
            "doctor_name": "Dr. Unknown Locum",
            "opd_fee": 300,
            "lab_fee": 0,
            "ultrasound_fee": 0,
            "ecg_fee": 0,
            "created_at": "2025-08-10T12:00:00+00:00",
        },
        {
            "id": "p-4",
            "patient_name": "Hamza",
            "contact_number": "0333-0000000",
            "doctor_name": "Ayesha Khan",
            "opd_fee": 600,
            "lab_fee": 0,
            "ultrasound_fee": 1500,
            "ecg_fee": 0,
            "created_at": "2025-08-11T06:30:00+00:00",
        },
    ]


def make_doctor(doctor_id: str, name: str, **percentages: Any) -> Doctor:
    return Doctor(
        id=doctor_id,
        name=name,
        percentages={FeeCategory[key]: Decimal(str(value)) for key, value in percentages.items()},
    )


def make_visit(visit_id: str, doctor_name: str | None = None, doctor_id: str | None = None, **fees: Any) -> Visit:
    return Visit(
        id=visit_id,
        patient_name=f"patient {visit_id}",
        fees={FeeCategory[key]: Decimal(str(value)) for key, value in fees.items()},
        doctor_id=doctor_id,
        doctor_name=doctor_name,
    )
