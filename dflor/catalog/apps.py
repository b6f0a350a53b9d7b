from django.apps import AppConfig

class CatalogConfig(AppConfig):
    name = 'dflor.catalog'
    label = 'catalog'
    verbose_name = 'Catálogo de Produtos'
    default_auto_field = 'django.db.models.BigAutoField'
