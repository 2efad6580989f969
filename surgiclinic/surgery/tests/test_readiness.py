from django.test import SimpleTestCase

from surgiclinic.surgery import readiness
from surgiclinic.surgery.models import ReadinessStatus


def complete_inputs(**overrides):
    values = {
        "procedure_plan": "<p>Laparoscopic cholecystectomy</p>",
        "risk_factors": "Diabetes type 2",
        "planned_anesthesia": "GENERAL",
        "implant_details": "None required",
        "signed_consent_count": 1,
        "pre_op_image_count": 2,
    }
    values.update(overrides)
    return values


class ReadinessChecklistTest(SimpleTestCase):
    def test_all_items_done_is_ready(self):
        result = readiness.evaluate(readiness.checklist(**complete_inputs()))

        self.assertEqual(result.status, ReadinessStatus.READY)
        self.assertTrue(result.ready_for_surgery)
        self.assertEqual(result.missing, [])

    def test_nothing_done_is_not_started(self):
        result = readiness.evaluate(readiness.checklist(
            procedure_plan="",
            risk_factors="",
            planned_anesthesia="",
            implant_details="",
            signed_consent_count=0,
            pre_op_image_count=0,
        ))

        self.assertEqual(result.status, ReadinessStatus.NOT_STARTED)
        self.assertFalse(result.ready_for_surgery)
        self.assertEqual(len(result.missing), 6)

    def test_partial_is_in_progress(self):
        result = readiness.evaluate(readiness.checklist(**complete_inputs(signed_consent_count=0)))

        self.assertEqual(result.status, ReadinessStatus.IN_PROGRESS)
        self.assertEqual([item.key for item in result.missing], ["consents"])

    def test_procedure_plan_markup_does_not_count(self):
        items = readiness.checklist(**complete_inputs(procedure_plan="<p><b>Short</b></p>   "))
        procedure = items[0]

        self.assertEqual(procedure.key, "procedure")
        self.assertFalse(procedure.done)

    def test_risk_factors_need_five_characters(self):
        short = readiness.checklist(**complete_inputs(risk_factors=" none "))
        enough = readiness.checklist(**complete_inputs(risk_factors="none."))

        self.assertFalse(short[1].done)
        self.assertTrue(enough[1].done)

    def test_blank_implant_details_are_missing(self):
        result = readiness.evaluate(readiness.checklist(**complete_inputs(implant_details="   ")))
        self.assertEqual([item.key for item in result.missing], ["implants"])

    def test_strip_html(self):
        self.assertEqual(readiness.strip_html("<p>Plan <i>A</i></p>"), "Plan A")
        self.assertEqual(readiness.strip_html(None), "")
