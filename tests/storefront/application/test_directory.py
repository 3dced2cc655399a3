"""Customer and staff lookups over the directory records."""

from storefront.directory import get_directory, reset_directory, set_directory
from storefront.directory.port import ProjectDirectory
from storefront.directory.record_adapter import RecordDirectory


class StaticDirectory(ProjectDirectory):
    def project_for_customer(self, email):
        return "99"

    def project_for_staff(self, username):
        return "99"

    def customer_id_for_email(self, email):
        return None

    def customer_id_for_document(self, dni):
        return None

    def customer_profile(self, customer_id):
        return None


class TestRecordDirectory:
    def test_customer_project(self, customer):
        customer(email="ana@example.com", project_id="10")
        assert get_directory().project_for_customer("ana@example.com") == "10"

    def test_unknown_customer(self):
        assert get_directory().project_for_customer("nadie@example.com") is None

    def test_customer_without_project(self, customer):
        customer(project_id=None)
        assert get_directory().project_for_customer("ana@example.com") is None

    def test_staff_project(self, staff):
        staff("admin20", project_id="20")
        assert get_directory().project_for_staff("admin20") == "20"

    def test_customer_ids(self, customer):
        record = customer(dni="45678912")
        directory = get_directory()

        assert directory.customer_id_for_email("ana@example.com") == str(record.id)
        assert directory.customer_id_for_document(" 45678912 ") == str(record.id)
        assert directory.customer_id_for_document("00000000") is None

    def test_customer_profile(self, customer):
        record = customer(first_names="Ana María", last_names="Quispe Huamán")

        profile = get_directory().customer_profile(str(record.id))

        assert profile.full_name == "Ana María Quispe Huamán"
        assert profile.cellphone == "999888777"
        assert profile.project_id == "10"

    def test_missing_profile(self):
        assert get_directory().customer_profile("missing") is None


class TestDirectoryFactory:
    def test_record_directory_by_default(self):
        reset_directory()
        assert isinstance(get_directory(), RecordDirectory)

    def test_override(self):
        set_directory(StaticDirectory())
        assert get_directory().project_for_staff("cualquiera") == "99"
