"""CRUD helpers over the users, resumes and interviewSessions collections.

Documents are stored in their camelCase wire shape. No transactions and no
version checks: concurrent updates to one record resolve as last writer wins.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel
from pymongo import DESCENDING

from resumeflow.db import INTERVIEW_SESSIONS, RESUMES, USERS
from resumeflow.models import InterviewResponse, InterviewSession, Resume, UserPreferences


class RecordNotFoundError(Exception):
    pass


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _object_id(record_id: str) -> ObjectId:
    try:
        return ObjectId(record_id)
    except (InvalidId, TypeError) as e:
        raise RecordNotFoundError(f"No record with id {record_id!r}") from e


def _serialize(doc: Dict[str, Any]) -> Dict[str, Any]:
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    return doc


def _to_document(record: BaseModel) -> Dict[str, Any]:
    return record.model_dump(by_alias=True, exclude={"id"}, exclude_none=True)


class Storage:
    def __init__(self, database: AsyncIOMotorDatabase):
        self.users = database[USERS]
        self.resumes = database[RESUMES]
        self.sessions = database[INTERVIEW_SESSIONS]

    # users

    async def upsert_user_profile(self, uid: str, profile: Dict[str, Any]) -> None:
        """Create the profile on first sign-in, merge the given fields afterwards."""
        await self.users.update_one(
            {"_id": uid},
            {
                "$set": {**profile, "uid": uid},
                "$currentDate": {"lastLoginAt": True},
                "$setOnInsert": {
                    "createdAt": _now(),
                    "preferences": UserPreferences().model_dump(by_alias=True),
                },
            },
            upsert=True,
        )

    async def get_user_profile(self, uid: str) -> Optional[Dict[str, Any]]:
        doc = await self.users.find_one({"_id": uid})
        return _serialize(doc) if doc else None

    # resumes

    async def create_resume(self, resume: Resume) -> str:
        doc = {**_to_document(resume), "uploadedAt": _now()}
        if doc.get("feedback"):
            doc["analyzedAt"] = doc["uploadedAt"]
        result = await self.resumes.insert_one(doc)
        return str(result.inserted_id)

    async def update_resume(self, resume_id: str, updates: Dict[str, Any]) -> None:
        update: Dict[str, Any] = {"$set": updates}
        if updates.get("feedback"):
            update["$currentDate"] = {"analyzedAt": True}
        result = await self.resumes.update_one({"_id": _object_id(resume_id)}, update)
        if result.matched_count == 0:
            raise RecordNotFoundError(f"No resume with id {resume_id!r}")

    async def get_resume(self, resume_id: str) -> Optional[Dict[str, Any]]:
        try:
            oid = _object_id(resume_id)
        except RecordNotFoundError:
            return None
        doc = await self.resumes.find_one({"_id": oid})
        return _serialize(doc) if doc else None

    async def get_user_resumes(self, user_id: str) -> List[Dict[str, Any]]:
        cursor = self.resumes.find({"userId": user_id}).sort("uploadedAt", DESCENDING)
        return [_serialize(doc) for doc in await cursor.to_list(length=None)]

    # interview sessions

    async def create_interview_session(self, session: InterviewSession) -> str:
        doc = {**_to_document(session), "createdAt": _now()}
        result = await self.sessions.insert_one(doc)
        return str(result.inserted_id)

    async def update_interview_session(self, session_id: str, updates: Dict[str, Any]) -> None:
        result = await self.sessions.update_one({"_id": _object_id(session_id)}, {"$set": updates})
        if result.matched_count == 0:
            raise RecordNotFoundError(f"No interview session with id {session_id!r}")

    async def append_interview_response(self, session_id: str, response: InterviewResponse) -> None:
        entry = {**_to_document(response), "timestamp": _now()}
        result = await self.sessions.update_one(
            {"_id": _object_id(session_id)},
            {"$push": {"responses": entry}},
        )
        if result.matched_count == 0:
            raise RecordNotFoundError(f"No interview session with id {session_id!r}")

    async def get_interview_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        try:
            oid = _object_id(session_id)
        except RecordNotFoundError:
            return None
        doc = await self.sessions.find_one({"_id": oid})
        return _serialize(doc) if doc else None

    async def get_user_interview_sessions(self, user_id: str) -> List[Dict[str, Any]]:
        cursor = self.sessions.find({"userId": user_id}).sort("createdAt", DESCENDING)
        return [_serialize(doc) for doc in await cursor.to_list(length=None)]
