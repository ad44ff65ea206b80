from typing import List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

Gender = Literal["feminine", "masculine", "non-binary"]
LookingFor = Literal["women", "men", "everyone"]
EVERYONE = "everyone"
Frequency = Literal["never", "socially", "regularly"]
ExerciseFrequency = Literal["never", "sometimes", "regularly", "daily"]
Goal = Literal["dating", "serious", "marriage", "friendship"]


class Lifestyle(BaseModel):
    model_config = ConfigDict(extra="ignore")

    alcohol: Optional[str] = None
    smoking: Optional[str] = None
    exercise: Optional[str] = None


class LifestyleUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    alcohol: Optional[Frequency] = None
    smoking: Optional[Frequency] = None
    exercise: Optional[ExerciseFrequency] = None


class Profile(BaseModel):
    """A row of ``user_profiles``. One per authenticated user."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    email: Optional[str] = None
    name: Optional[str] = None
    age: Optional[int] = None
    # Kept as plain strings so legacy rows still load; writes go through ProfileUpdate
    gender: Optional[str] = None
    looking_for: Optional[str] = None
    zodiac_sign: Optional[str] = None
    moon_sign: Optional[str] = None
    rising_sign: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    location: Optional[str] = None
    profession: Optional[str] = None
    education: Optional[str] = None
    personality_type: Optional[str] = None
    communication_style: Optional[str] = None
    core_values: List[str] = Field(default_factory=list)
    love_languages: List[str] = Field(default_factory=list)
    languages_spoken: List[str] = Field(default_factory=list)
    lifestyle: Optional[Lifestyle] = None
    birth_date: Optional[str] = None
    birth_time: Optional[str] = None
    birth_place: Optional[str] = None
    onboarding_current_step: int = 0
    onboarding_completed_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("core_values", "love_languages", "languages_spoken", mode="before")
    @classmethod
    def _null_list(cls, value):
        return [] if value is None else value


class ProfileUpdate(BaseModel):
    """Mutable profile fields. Unset fields are left untouched."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=80)
    age: Optional[int] = Field(default=None, ge=18, le=120)
    gender: Optional[Gender] = None
    looking_for: Optional[LookingFor] = None
    zodiac_sign: Optional[str] = Field(default=None, max_length=32)
    moon_sign: Optional[str] = Field(default=None, max_length=32)
    rising_sign: Optional[str] = Field(default=None, max_length=32)
    bio: Optional[str] = Field(default=None, max_length=500)
    location: Optional[str] = Field(default=None, max_length=120)
    profession: Optional[str] = Field(default=None, max_length=120)
    education: Optional[str] = Field(default=None, max_length=120)
    personality_type: Optional[str] = Field(default=None, max_length=32)
    communication_style: Optional[str] = Field(default=None, max_length=64)
    core_values: Optional[List[str]] = None
    love_languages: Optional[List[str]] = None
    languages_spoken: Optional[List[str]] = None
    lifestyle: Optional[LifestyleUpdate] = None
    birth_date: Optional[str] = None
    birth_time: Optional[str] = None
    birth_place: Optional[str] = Field(default=None, max_length=120)


class ProfileView(Profile):
    """Another user's profile as shown on the profile detail screen."""

    photos: List[str] = Field(default_factory=list)
    interests: List[str] = Field(default_factory=list)
    goals: List[str] = Field(default_factory=list)
    compatibility_score: int


class OnboardingStepRequest(BaseModel):
    step: int = Field(ge=0, le=7)


class InterestsRequest(BaseModel):
    interests: List[str] = Field(default_factory=list, max_length=30)


class GoalsRequest(BaseModel):
    goals: List[Goal] = Field(default_factory=list)


class ImageUploadRequest(BaseModel):
    data_url: str = Field(min_length=1)


class Photo(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    user_id: str
    photo_url: str
    order_index: int = 0
    created_at: Optional[str] = None


__all__ = [
    "EVERYONE",
    "Gender",
    "Goal",
    "GoalsRequest",
    "ImageUploadRequest",
    "InterestsRequest",
    "Lifestyle",
    "LifestyleUpdate",
    "LookingFor",
    "OnboardingStepRequest",
    "Photo",
    "Profile",
    "ProfileUpdate",
    "ProfileView",
]
