import asyncio
import sys
import os

# Add project root to sys.path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import func, select
from app.core.config import settings
from app.db.session import Database
from app.models.user import User


async def list_google_users():
    database = Database(settings.DATABASE_URL)
    async with database.session() as session:
        result = await session.execute(
            select(User).where(User.google_id.is_not(None)).order_by(User.created_at)
        )
        users = result.scalars().all()
        total = await session.scalar(select(func.count()).select_from(User))
    await database.dispose()

    print(f"Google sign-in users: {len(users)}\n")
    for i, user in enumerate(users, start=1):
        print(f"{i}. {user.name} ({user.email})")
        print(f"   Google ID: {user.google_id}")
        print(f"   Picture: {user.profile_picture or 'none'}")
        print(f"   Joined: {user.created_at}\n")
    print(f"Total users: {total}")


if __name__ == "__main__":
    asyncio.run(list_google_users())
