"""
Core App Configuration
"""

from django.apps import AppConfig


class CoreConfig(AppConfig):
    """Standard App-Konfiguration für Core (Benutzer, Rollen, Audit)"""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'surgiclinic.core'
    verbose_name = 'Core (Users, Roles & Audit)'
