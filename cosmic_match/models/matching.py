from typing import List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .profile import Profile

ActionType = Literal["like", "pass"]
MatchStatus = Literal["pending", "mutual"]


class Action(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    user_id: str
    target_user_id: str
    action_type: ActionType
    created_at: Optional[str] = None


class Match(BaseModel):
    """A row of ``matches``. ``user1_id`` is the user whose like created it."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    user1_id: str
    user2_id: str
    status: MatchStatus = "pending"
    compatibility_score: Optional[int] = None
    created_at: Optional[str] = None
    matched_at: Optional[str] = None

    def other_user(self, user_id: str) -> str:
        return self.user2_id if self.user1_id == user_id else self.user1_id

    def involves(self, user_id: str) -> bool:
        return user_id in (self.user1_id, self.user2_id)


class Candidate(Profile):
    """A profile eligible for the swipe flow, enriched for display."""

    photos: List[str] = Field(default_factory=list)
    interests: List[str] = Field(default_factory=list)
    goals: List[str] = Field(default_factory=list)
    compatibility_score: int


class CandidatesResponse(BaseModel):
    candidates: List[Candidate] = Field(default_factory=list)


class ActionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target_user_id: str = Field(alias="target_user_id", min_length=1)


class LikeResult(BaseModel):
    is_match: bool
    match_id: Optional[str] = None
    conversation_id: Optional[str] = None


class LikeResponse(LikeResult):
    status: Literal["ok"] = "ok"


class PassResponse(BaseModel):
    status: Literal["ok"] = "ok"
    recorded: bool = False


class MatchWithProfile(BaseModel):
    """A mutual match as shown in the new matches panel."""

    match: Match
    user_profile: Optional[Profile] = None
    conversation_id: Optional[str] = None


class NewMatchesResponse(BaseModel):
    matches: List[MatchWithProfile] = Field(default_factory=list)


__all__ = [
    "Action",
    "ActionRequest",
    "ActionType",
    "Candidate",
    "CandidatesResponse",
    "LikeResponse",
    "LikeResult",
    "Match",
    "MatchStatus",
    "MatchWithProfile",
    "NewMatchesResponse",
    "PassResponse",
]
