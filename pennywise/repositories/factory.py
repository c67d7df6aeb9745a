from pennywise.repositories.base import UnitOfWork


def get_unit_of_work() -> UnitOfWork:
    from pennywise.db import get_connection
    from pennywise.repositories.sqlalchemy import SQLAlchemyUnitOfWork

    return SQLAlchemyUnitOfWork(get_connection())
