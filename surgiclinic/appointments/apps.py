"""
Appointments App Configuration
"""

from django.apps import AppConfig


class AppointmentsConfig(AppConfig):
	"""Standard App-Konfiguration für Termine (Check-in & No-Show)"""
	default_auto_field = 'django.db.models.BigAutoField'
	name = 'surgiclinic.appointments'
	verbose_name = 'Appointments (Check-in & No-Show)'
