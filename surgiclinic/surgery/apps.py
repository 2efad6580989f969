"""
Surgery App Configuration
"""

from django.apps import AppConfig


class SurgeryConfig(AppConfig):
	"""Standard App-Konfiguration für OP-Fälle (Planung, Theater-Buchung, OP-Zeiten)"""
	default_auto_field = 'django.db.models.BigAutoField'
	name = 'surgiclinic.surgery'
	verbose_name = 'Surgery (Cases, Theater Booking & Timeline)'
