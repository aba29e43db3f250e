"""Core module - cross-cutting services shared by the mapper and the API.

Holds observability (structured logging, metrics). Domain logic for
master-data mapping lives in /master_data_mapper/.
"""

__version__ = "0.1.0"
