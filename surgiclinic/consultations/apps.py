"""
Consultations App Configuration
"""

from django.apps import AppConfig


class ConsultationsConfig(AppConfig):
	"""Standard App-Konfiguration für Konsultationen (Entwürfe & Abschluss)"""
	default_auto_field = 'django.db.models.BigAutoField'
	name = 'surgiclinic.consultations'
	verbose_name = 'Consultations (Drafts & Completion)'
