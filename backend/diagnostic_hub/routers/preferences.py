from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..db import get_db
from ..language import DatabasePreferenceStore, LanguagePreference, language_options
from ..tiers import placement_pathway
from .auth import User, get_current_user


router = APIRouter(tags=["preferences"])


class LanguageRequest(BaseModel):
	language: Optional[str] = None


def _preference(user: User, db: Session) -> LanguagePreference:
	return LanguagePreference(DatabasePreferenceStore(db, user.id))


@router.get("/preferences/language")
async def get_language(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	body = _preference(user, db).as_dict()
	body["options"] = language_options()
	return body


@router.put("/preferences/language")
async def put_language(req: LanguageRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	pref = _preference(user, db)
	try:
		pref.set_language(req.language or "")
	except ValueError as e:
		raise HTTPException(status_code=400, detail=str(e))
	return pref.as_dict()


@router.get("/placement")
async def placement():
	return {"tiers": placement_pathway()}
