from django.apps import AppConfig


class ImobigestConfig(AppConfig):
    name = 'imobigest'
    verbose_name = 'ImobiGest'
