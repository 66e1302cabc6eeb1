"""
Employee document tests: expiry classification, filtering and the
passport / visa forms.
"""

from datetime import date, timedelta

import pytest

from app.models import EmployeeDocument
from app.services import document_service
from app.services.document_service import EXPIRED, EXPIRING_SOON, VALID, classify_expiry
from app.time_utils import utctoday
from app.validation import ValidationError


TODAY = date(2026, 10, 19)


def passport_payload(user, **overrides):
    payload = {
        "userId": user.id,
        "passportNumber": "P1234567",
        "fullName": "Mona User",
        "nationality": "Saudi",
        "dateOfBirth": "1988-03-14",
        "placeOfBirth": "Jeddah",
        "gender": "Female",
        "issueDate": "2022-01-10",
        "expiryDate": "2032-01-09",
        "issuingAuthority": "Ministry of Interior",
        "issuingCountry": "SA",
    }
    payload.update(overrides)
    return payload


def visa_payload(user, passport, **overrides):
    payload = {
        "userId": user.id,
        "passportId": passport.id,
        "visaNumber": "V-778",
        "visaType": "Business",
        "issuingCountry": "AE",
        "destinationCountry": "United Arab Emirates",
        "issueDate": "2026-01-01",
        "expiryDate": "2027-01-01",
        "entryType": "Multiple Entry",
        "feeAmount": "350",
    }
    payload.update(overrides)
    return payload


def add_document(db_session, user, expiry: date, document_type="iqama"):
    doc = EmployeeDocument(
        user_id=user.id,
        document_type=document_type,
        document_number=f"N-{expiry.isoformat()}",
        issuing_country="SA",
        issue_date=expiry - timedelta(days=3650),
        expiry_date=expiry,
    )
    db_session.add(doc)
    db_session.commit()
    return doc


class TestExpiryClassification:

    @pytest.mark.parametrize(
        "offset,status",
        [
            (-1, EXPIRED),
            (0, EXPIRED),
            (1, EXPIRING_SOON),
            (10, EXPIRING_SOON),
            (30, EXPIRING_SOON),
            (31, VALID),
            (40, VALID),
        ],
    )
    def test_boundaries(self, offset, status):
        result = classify_expiry(TODAY + timedelta(days=offset), TODAY)
        assert result.status == status
        assert result.days_until_expiry == offset

    def test_custom_window(self):
        assert classify_expiry(TODAY + timedelta(days=40), TODAY, warning_days=60).status == EXPIRING_SOON

    def test_summary_and_listing(self, db_session, manager, other_manager):
        today = utctoday()
        add_document(db_session, manager, today + timedelta(days=10))
        add_document(db_session, manager, today - timedelta(days=1))
        add_document(db_session, other_manager, today + timedelta(days=40))

        docs = document_service.list_documents()
        summary = document_service.summarize(docs)
        assert summary == {"total": 3, EXPIRED: 1, EXPIRING_SOON: 1, VALID: 1}

        serialized = document_service.document_to_dict(docs[0])
        assert serialized["status"] == EXPIRED
        assert serialized["user"]["email"] == manager.email

    def test_expiring_documents(self, db_session, manager):
        today = utctoday()
        add_document(db_session, manager, today + timedelta(days=10))
        add_document(db_session, manager, today - timedelta(days=5))
        add_document(db_session, manager, today + timedelta(days=45))

        assert len(document_service.expiring_documents()) == 2
        assert len(document_service.expiring_documents(days=60)) == 3
        with pytest.raises(ValidationError):
            document_service.expiring_documents(days=-1)


class TestFiltering:

    def test_filter_by_employee_reference(self, db_session, manager, other_manager):
        add_document(db_session, manager, utctoday() + timedelta(days=100))
        add_document(db_session, other_manager, utctoday() + timedelta(days=100))

        assert len(document_service.list_documents(employee=str(manager.id))) == 1
        assert len(document_service.list_documents(employee=other_manager.email)) == 1

    def test_unknown_employee_is_empty(self, db_session, manager):
        add_document(db_session, manager, utctoday() + timedelta(days=100))
        assert document_service.list_documents(employee="nobody@traveldesk.test") == []


class TestCrud:

    def test_create_update_delete(self, db_session, manager):
        doc = document_service.create_document({
            "userId": manager.email,
            "documentType": "iqama",
            "documentNumber": "1099887766",
            "issuingCountry": "SA",
            "issueDate": "2020-05-01",
            "expiryDate": "2030-05-01",
        })
        assert doc.user_id == manager.id

        doc = document_service.update_document(doc.id, {"notes": "Renewal booked"})
        assert doc.notes == "Renewal booked"

        with pytest.raises(ValidationError, match="expiryDate"):
            document_service.update_document(doc.id, {"expiryDate": "2019-01-01"})

        document_service.delete_document(doc.id)
        with pytest.raises(ValueError):
            document_service.get_document(doc.id)

    def test_create_requires_holder(self, db_session):
        with pytest.raises(ValidationError, match="userId"):
            document_service.create_document({"documentType": "passport"})

    def test_unknown_document_type(self, db_session, manager):
        with pytest.raises(ValidationError, match="documentType"):
            document_service.create_document({
                "userId": manager.id,
                "documentType": "library_card",
                "documentNumber": "1",
                "issuingCountry": "SA",
                "issueDate": "2020-05-01",
                "expiryDate": "2030-05-01",
            })


class TestPassportsAndVisas:

    def test_create_passport(self, db_session, manager):
        doc = document_service.create_passport(passport_payload(manager, personalNumber=" 42 "))

        assert doc.document_type == "passport"
        assert doc.document_number == "P1234567"
        assert doc.document_data["gender"] == "Female"
        assert doc.document_data["personalNumber"] == "42"
        assert document_service.list_passports() == [doc]

    def test_passport_missing_field_named(self, db_session, manager):
        with pytest.raises(ValidationError, match="Place of birth is required"):
            document_service.create_passport(passport_payload(manager, placeOfBirth="  "))

    def test_passport_gender(self, db_session, manager):
        with pytest.raises(ValidationError, match="gender"):
            document_service.create_passport(passport_payload(manager, gender="F"))

    def test_passport_expiry_after_issue(self, db_session, manager):
        with pytest.raises(ValidationError):
            document_service.create_passport(passport_payload(manager, expiryDate="2021-01-01"))

    def test_passport_unknown_employee(self, db_session, manager):
        with pytest.raises(ValidationError, match="employee not found"):
            document_service.create_passport(passport_payload(manager, userId="9999"))

    def test_create_visa(self, db_session, manager):
        passport = document_service.create_passport(passport_payload(manager))
        visa = document_service.create_visa(visa_payload(manager, passport))

        assert visa.document_type == "visa"
        assert visa.document_data["passportId"] == passport.id
        assert visa.document_data["feeAmount"] == 350.0
        assert visa.document_data["feeCurrency"] == "USD"
        assert document_service.list_visas() == [visa]

    def test_visa_needs_holders_own_passport(self, db_session, manager, other_manager):
        passport = document_service.create_passport(passport_payload(manager))
        with pytest.raises(ValidationError, match="passport not found"):
            document_service.create_visa(visa_payload(other_manager, passport))

    def test_visa_cannot_point_at_another_visa(self, db_session, manager):
        passport = document_service.create_passport(passport_payload(manager))
        visa = document_service.create_visa(visa_payload(manager, passport))
        with pytest.raises(ValidationError, match="passport not found"):
            document_service.create_visa(visa_payload(manager, visa, visaNumber="V-779"))

    def test_visa_entry_type(self, db_session, manager):
        passport = document_service.create_passport(passport_payload(manager))
        with pytest.raises(ValidationError, match="entryType"):
            document_service.create_visa(visa_payload(manager, passport, entryType="Unlimited"))
