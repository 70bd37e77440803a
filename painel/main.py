# painel/main.py
from typing import List
import os
import logging

from fastapi import FastAPI, HTTPException, Depends, Body, Response
from fastapi.middleware.cors import CORSMiddleware

from painel import schemas, database
from painel.persistence import InMemoryTable, PersistenceFailure, RecordNotFound, SqlAlchemyTable
from painel.registry import CSV_FILENAME, CSV_MEDIA_TYPE, StudentRegistry, ValidationFailure

# config / env
DATABASE_URL = os.getenv("DATABASE_URL", "postgresql://postgres:postgres@db:5432/alunos_db")
PAINEL_BACKEND = os.getenv("PAINEL_BACKEND", "database")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# logging
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger("painel")

app = FastAPI(title="Painel de Controle Escolar")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_registry = None

def build_registry(backend: str, database_url: str) -> StudentRegistry:
    if backend == "demo":
        logger.info("Using in-memory demonstration data")
        return StudentRegistry(InMemoryTable.com_dados_demonstracao())
    return StudentRegistry(SqlAlchemyTable(database.init_db(database_url)))

# Startup: build the registry for the configured backend and load the first page of data
@app.on_event("startup")
def startup():
    global _registry
    logger.info("Initializing registry with backend=%s...", PAINEL_BACKEND)
    _registry = build_registry(PAINEL_BACKEND, DATABASE_URL)
    _registry.list()
    logger.info("Startup complete.")

def get_registry() -> StudentRegistry:
    if _registry is None:
        raise HTTPException(status_code=503, detail="Registry not initialized")
    return _registry

def _raise_failure(registry: StudentRegistry):
    if isinstance(registry.last_failure, RecordNotFound):
        raise HTTPException(status_code=404, detail="Aluno not found")
    last = registry.notifications[-1] if registry.notifications else None
    raise HTTPException(status_code=502, detail=last.description if last else "Persistence failure")

# Root and health endpoints
@app.get("/")
def root():
    return {"service": "Painel de Controle Escolar", "status": "running", "endpoints": ["/alunos", "/alunos/export", "/notifications", "/docs"]}

@app.get("/health")
def health(registry: StudentRegistry = Depends(get_registry)):
    try:
        registry.table.select()
    except PersistenceFailure as e:
        logger.exception("Health check failed: %s", e)
        raise HTTPException(status_code=503, detail="Database unreachable")
    return {"status": "ok", "demonstracao": registry.table.demonstracao}

# Reload from the table; the previous list is kept if the load fails
@app.get("/alunos", response_model=List[schemas.AlunoOut])
def list_alunos(registry: StudentRegistry = Depends(get_registry)):
    # the operation and the last_failure read share one lock
    with registry.lock:
        if not registry.list():
            _raise_failure(registry)
        return list(registry.alunos)

@app.post("/alunos", response_model=List[schemas.AlunoOut], status_code=201)
def create_aluno(payload: dict = Body(...), registry: StudentRegistry = Depends(get_registry)):
    with registry.lock:
        try:
            ok = registry.create(payload)
        except ValidationFailure as e:
            raise HTTPException(status_code=422, detail={"errors": e.errors})
        if not ok:
            _raise_failure(registry)
        return list(registry.alunos)

@app.put("/alunos/{aluno_id}", response_model=List[schemas.AlunoOut])
def update_aluno(aluno_id: str, payload: dict = Body(...), registry: StudentRegistry = Depends(get_registry)):
    with registry.lock:
        try:
            ok = registry.update(aluno_id, payload)
        except ValidationFailure as e:
            raise HTTPException(status_code=422, detail={"errors": e.errors})
        if not ok:
            _raise_failure(registry)
        return list(registry.alunos)

# Flip Pago <-> Pendente for a single aluno
@app.post("/alunos/{aluno_id}/status", response_model=schemas.AlunoOut)
def toggle_status(aluno_id: str, body: schemas.ToggleStatusIn, registry: StudentRegistry = Depends(get_registry)):
    with registry.lock:
        if not registry.toggle_status(aluno_id, body.status_atual):
            _raise_failure(registry)
        aluno = registry.find(aluno_id)
        if aluno is None:
            # updated in the table but not loaded locally yet
            registry.list()
            aluno = registry.find(aluno_id)
        if aluno is None:
            raise HTTPException(status_code=404, detail="Aluno not found")
        return aluno

@app.get("/alunos/export")
def export_alunos(registry: StudentRegistry = Depends(get_registry)):
    content = registry.export_csv()
    return Response(
        content=content.encode("utf-8"),
        media_type=f"{CSV_MEDIA_TYPE}; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{CSV_FILENAME}"'},
    )

@app.get("/notifications", response_model=List[schemas.NotificationOut])
def drain_notifications(registry: StudentRegistry = Depends(get_registry)):
    return [schemas.NotificationOut.model_validate(n) for n in registry.drain_notifications()]
