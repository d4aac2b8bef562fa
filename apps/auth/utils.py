from apps.auth.schemas import ProfileOut
from models.user import Profile


def serialize_profile(profile: Profile) -> ProfileOut:
    """
    Convert a Profile ORM object into its public shape.
    """
    return ProfileOut(
        id=str(profile.id),
        userId=str(profile.user_id),
        email=profile.email,
        fullName=profile.full_name,
        avatarUrl=profile.avatar_url,
        createdAt=profile.created_at,
        updatedAt=profile.updated_at,
    )
