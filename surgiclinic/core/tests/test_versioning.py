"""Tests for version-token guarded draft saves."""

from __future__ import annotations

from django.test import SimpleTestCase, TestCase

from surgiclinic.core.exceptions import ErrorKind, ValidationFailed, VersionConflict
from surgiclinic.core.models import Role, User
from surgiclinic.core.versioning import check_version, mint_version_token, save_draft
from surgiclinic.surgery.models import CasePlan, SurgicalCase


class CheckVersionTest(SimpleTestCase):
    def test_tokens_are_unique(self):
        self.assertNotEqual(mint_version_token(), mint_version_token())

    def test_matching_or_missing_token_passes(self):
        check_version("abc", "abc")
        check_version("abc", None)
        check_version("abc", "")

    def test_stale_token_conflicts(self):
        with self.assertRaises(VersionConflict) as ctx:
            check_version("current", "stale")

        self.assertEqual(ctx.exception.kind, ErrorKind.VERSION_CONFLICT)
        self.assertEqual(ctx.exception.to_dict()["provided_version"], "stale")
        self.assertEqual(ctx.exception.to_dict()["current_version"], "current")


class SaveDraftTest(TestCase):
    databases = {"default"}

    def setUp(self):
        role, _ = Role.objects.using("default").get_or_create(name=Role.DOCTOR, defaults={"label": "Arzt"})
        surgeon = User.objects.db_manager("default").create_user(
            username="surgeon_versioning",
            email="surgeon_versioning@example.com",
            password="DummyPass123!",
            role=role,
        )
        surgical_case = SurgicalCase.objects.using("default").create(patient_id=901, primary_surgeon=surgeon)
        self.plan = CasePlan.objects.using("default").create(case=surgical_case)

    def test_current_token_writes_and_rotates(self):
        token = self.plan.version_token

        record, new_token = save_draft(self.plan, token, {"risk_factors": "Hypertension"})

        self.assertIs(record, self.plan)
        self.assertNotEqual(new_token, token)
        stored = CasePlan.objects.using("default").get(pk=self.plan.pk)
        self.assertEqual(stored.version_token, new_token)
        self.assertEqual(stored.risk_factors, "Hypertension")

    def test_stale_token_writes_nothing(self):
        token = self.plan.version_token
        save_draft(self.plan, token, {"risk_factors": "First"})
        stale_copy = CasePlan.objects.using("default").get(pk=self.plan.pk)
        stale_copy.version_token = token

        with self.assertRaises(VersionConflict):
            save_draft(stale_copy, token, {"risk_factors": "Second"})

        self.assertEqual(CasePlan.objects.using("default").get(pk=self.plan.pk).risk_factors, "First")

    def test_concurrent_write_between_read_and_update(self):
        token = self.plan.version_token
        # Another session saves after we loaded the row.
        CasePlan.objects.using("default").filter(pk=self.plan.pk).update(version_token=mint_version_token())

        with self.assertRaises(VersionConflict):
            save_draft(self.plan, token, {"implant_details": "Mesh"})

    def test_protected_and_unknown_fields(self):
        with self.assertRaises(ValidationFailed) as ctx:
            save_draft(self.plan, None, {"version_token": "x", "id": 5, "colour": "red"})

        self.assertEqual(
            [error["field"] for error in ctx.exception.errors],
            ["colour", "id", "version_token"],
        )
