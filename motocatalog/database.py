import logging

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

logger = logging.getLogger(__name__)

# Base Declarativa: nossas classes de modelo herdam desta
Base = declarative_base()


class Database:
    """Engine e fábrica de sessões de um processo.

    Criada pela aplicação na inicialização e descartada no desligamento,
    em vez de um cliente global no nível do módulo.
    """

    def __init__(self, url: str):
        self.url = url
        connect_args = {}
        if url.startswith("sqlite"):
            # 'check_same_thread' é necessário apenas para SQLite
            connect_args["check_same_thread"] = False

        self.engine = create_engine(url, connect_args=connect_args)

        if url.startswith("sqlite"):
            # SQLite só respeita ON DELETE CASCADE com foreign_keys ligado
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def create_all(self):
        # Importa os modelos para registrar as tabelas no metadata
        from motocatalog import database_models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        logger.info("Tabelas verificadas em %s", self.engine.url)

    def session(self):
        return self.SessionLocal()

    def dispose(self):
        self.engine.dispose()
        logger.info("Conexões com o banco encerradas")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# --- Função helper para obter a sessão ---
def get_db(request: Request):
    """Abre uma sessão por requisição e garante o fechamento."""
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
