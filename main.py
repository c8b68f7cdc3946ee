import logging
import re
from contextlib import asynccontextmanager
from typing import Optional, List, Dict, Any

from bson.errors import InvalidId
from fastapi import FastAPI, HTTPException, Depends, Body, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from passlib.context import CryptContext
from pymongo import ASCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
from database import (
    USERS, EVENTS, connect, get_db, object_id, parse_datetime,
    create_document, get_documents, update_result, delete_result,
)
from schemas import User, Event, RegisterRequest, LoginRequest, JoinRequest, UserEnvelope, Message

logger = logging.getLogger("eventhub")

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=10)


def setup_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if root.handlers:
        return
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        # stored value is not a recognizable hash
        return False


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    return {"name": user.get("name"), "email": user.get("email"), "photo": user.get("photo")}


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.db = connect(config.DATABASE_URL, config.DATABASE_NAME, config.DB_TIMEOUT_MS)
    yield
    if app.state.db is not None:
        app.state.db.client.close()


setup_logging(config.LOG_LEVEL)

app = FastAPI(title="Event Hub API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail},
                        headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", message)
    return JSONResponse(status_code=400, content={"message": message})


@app.exception_handler(InvalidId)
async def invalid_id_error(request: Request, exc: InvalidId):
    return JSONResponse(status_code=400, content={"message": "Invalid id"})


@app.exception_handler(PyMongoError)
async def store_error(request: Request, exc: PyMongoError):
    logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


@app.exception_handler(Exception)
async def unexpected_error(request: Request, exc: Exception):
    # starlette re-raises after this response, so the server logs the traceback
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


@app.get("/", response_class=PlainTextResponse)
def root():
    return "Event Server is running"


# Events

@app.post("/events")
def create_event(event: Dict[str, Any] = Body(...), db: Database = Depends(get_db)):
    if "dateTime" in event:
        event["dateTime"] = parse_datetime(event["dateTime"])
    return create_document(db, EVENTS, event)


@app.post("/events/{event_id}/join", response_model=Message)
def join_event(event_id: str, payload: Optional[JoinRequest] = None, db: Database = Depends(get_db)):
    email = payload.email if payload else None
    if not email:
        raise HTTPException(status_code=400, detail="User email is required")

    result = db[EVENTS].update_one(
        {"_id": object_id(event_id), "attendeeCount": {"$ne": email}},
        {"$addToSet": {"attendeeCount": email}},
    )
    if result.modified_count == 0:
        raise HTTPException(status_code=400, detail="User already joined the event")
    logger.info("%s joined event %s", email, event_id)
    return {"message": "Successfully joined the event"}


@app.get("/events")
def list_events(search: Optional[str] = None, db: Database = Depends(get_db)) -> List[Dict[str, Any]]:
    query = {}
    if search:
        query["title"] = {"$regex": re.escape(search), "$options": "i"}
    return get_documents(db, EVENTS, query, sort=[("dateTime", ASCENDING)])


@app.put("/events/{event_id}")
def update_event(event_id: str, event: Event, db: Database = Depends(get_db)):
    result = db[EVENTS].update_one({"_id": object_id(event_id)}, {"$set": event.to_document()})
    return update_result(result)


@app.delete("/events/{event_id}")
def delete_event(event_id: str, db: Database = Depends(get_db)):
    result = db[EVENTS].delete_one({"_id": object_id(event_id)})
    return delete_result(result)


# Users

@app.post("/register", response_model=UserEnvelope, status_code=201)
def register(payload: RegisterRequest, db: Database = Depends(get_db)):
    email = payload.email
    if db[USERS].find_one({"email": email}):
        raise HTTPException(status_code=400, detail="User already exists")

    user = User(name=payload.name, email=email, password=hash_password(payload.password), photo=payload.photo)
    try:
        create_document(db, USERS, user)
    except DuplicateKeyError:
        # lost a race with a concurrent registration
        raise HTTPException(status_code=400, detail="User already exists")
    logger.info("Registered user %s", email)
    return {"user": public_user(user.model_dump())}


@app.post("/login", response_model=UserEnvelope)
def login(payload: LoginRequest, db: Database = Depends(get_db)):
    user = db[USERS].find_one({"email": payload.email})
    if not user:
        raise HTTPException(status_code=401, detail="Email not found")
    if not verify_password(payload.password, user.get("password", "")):
        raise HTTPException(status_code=401, detail="Incorrect password")
    return {"user": public_user(user)}


@app.get("/users")
def list_users(db: Database = Depends(get_db)) -> List[Dict[str, Any]]:
    return get_documents(db, USERS)


if __name__ == "__main__":
    import uvicorn
    logger.info("Server is running on port %s", config.PORT)
    uvicorn.run(app, host=config.HOST, port=config.PORT)
