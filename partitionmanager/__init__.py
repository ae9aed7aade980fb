from importlib.metadata import version

__version__ = version("django-partition-manager")
