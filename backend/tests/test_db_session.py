import asyncio
import unittest
from unittest import mock

from fastapi import HTTPException
from sqlalchemy import inspect
from sqlalchemy.exc import OperationalError

import helpers  # noqa: F401  (fija el entorno de pruebas)
from product_admin.api import deps
from product_admin.db import session as db_session


class DBSessionTest(unittest.TestCase):
    """Pruebas de la inicialización de la base de datos"""

    def tearDown(self):
        db_session.dispose_engine()

    def test_01_init_and_create_tables(self):
        self.assertTrue(asyncio.run(db_session.init_db_connection(max_retries=1)))
        db_session.create_tables()

        self.assertEqual({"products", "images"}, set(inspect(db_session.engine).get_table_names()))

        dependency = deps.get_db()
        db = next(dependency)
        self.assertTrue(db.is_active)
        dependency.close()

    def test_02_retries_then_gives_up(self):
        """Tras agotar los reintentos la inicialización devuelve False"""
        failure = OperationalError("SELECT 1", {}, Exception("sin conexión"))
        with mock.patch.object(db_session, "build_engine", side_effect=failure) as build:
            initialized = asyncio.run(db_session.init_db_connection(max_retries=3, initial_delay=0))

        self.assertFalse(initialized)
        self.assertEqual(3, build.call_count)
        self.assertFalse(db_session._is_initialized)

    def test_03_session_unavailable_before_init(self):
        with self.assertRaises(HTTPException) as ctx:
            next(deps.get_db())

        self.assertEqual(503, ctx.exception.status_code)

    def test_04_create_tables_requires_engine(self):
        with self.assertRaises(RuntimeError):
            db_session.create_tables()


if __name__ == "__main__":
    unittest.main()
