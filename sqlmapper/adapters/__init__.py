from sqlmapper.adapters.dbapi import DBAPICommand, DBAPIConnection

__all__ = ("DBAPICommand", "DBAPIConnection")
