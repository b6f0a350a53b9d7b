# dflor/core/apps.py

from django.apps import AppConfig

class CoreConfig(AppConfig):
    # O nome completo do path da aplicação
    name = 'dflor.core'
    label = 'core'
    verbose_name = 'Camada de Entidades e Lógica (Core)'

    # Sem modelos: a persistência fica nos apps catalog e pedidos.
    default_auto_field = 'django.db.models.BigAutoField'
