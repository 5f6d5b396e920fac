"""
Seed script to populate the database with users and snacks for trying out the feed.
Run this script with: python seed_snacks.py
"""
import logging
from app import app
from models import db, User, Snack
from utils.matching import purge_user

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SEED_USERS = [
    {
        "id": "seed_user_001",
        "name": "Aiko Tanaka",
        "email": "aiko.tanaka@test.com",
        "avatar_url": "https://images.unsplash.com/photo-1494790108377-be9c29b29330?w=400&h=400&fit=crop",
        "snacks": [
            {
                "name": "Mochi",
                "description": "Six strawberry daifuku from the shop near Shibuya station.",
                "location": "Tokyo",
                "image_url": "https://images.unsplash.com/photo-1631206753348-db44968fd440?w=600&fit=crop",
            },
            {
                "name": "Pocky Matcha",
                "description": "Two unopened boxes of the seasonal matcha flavour.",
                "location": "Tokyo",
                "image_url": "https://images.unsplash.com/photo-1582716401301-b2407dc7563d?w=600&fit=crop",
            },
        ],
    },
    {
        "id": "seed_user_002",
        "name": "Ben Carter",
        "email": "ben.carter@test.com",
        "avatar_url": "https://images.unsplash.com/photo-1507003211169-0a1dd7228f2d?w=400&h=400&fit=crop",
        "snacks": [
            {
                "name": "Chips",
                "description": "Salt and vinegar crisps, family size, best before next month.",
                "location": "London",
                "image_url": "https://images.unsplash.com/photo-1566478989037-eec170784d0b?w=600&fit=crop",
            },
        ],
    },
    {
        "id": "seed_user_003",
        "name": "Lucía Gómez",
        "email": "lucia.gomez@test.com",
        "avatar_url": "https://images.unsplash.com/photo-1438761681033-6461ffad8d80?w=400&h=400&fit=crop",
        "snacks": [
            {
                "name": "Alfajores",
                "description": "A dozen dulce de leche alfajores, homemade this weekend.",
                "location": "Buenos Aires",
                "image_url": "https://images.unsplash.com/photo-1612201142855-7873bc1661b4?w=600&fit=crop",
            },
            {
                "name": "Turrón",
                "description": "Soft Jijona turrón bar, still sealed.",
                "location": "Buenos Aires",
                "image_url": "https://images.unsplash.com/photo-1548848221-0c2e497ed557?w=600&fit=crop",
            },
        ],
    },
    {
        "id": "seed_user_004",
        "name": "Kwame Mensah",
        "email": "kwame.mensah@test.com",
        "avatar_url": "https://images.unsplash.com/photo-1500648767791-00dcc994a43e?w=400&h=400&fit=crop",
        "snacks": [
            {
                "name": "Plantain Chips",
                "description": "Spicy plantain chips, three bags from the Makola market.",
                "location": "Accra",
                "image_url": "https://images.unsplash.com/photo-1600952841320-db92ec4047ca?w=600&fit=crop",
            },
        ],
    },
]


def seed_database():
    """Populate database with seed users and their snacks"""
    with app.app_context():
        db.create_all()
        logger.info("Starting database seeding...")

        # Remove earlier seed data together with its swipes, matches and messages
        existing = [user.id for user in User.query.filter(User.id.like('seed_user_%')).all()]
        if existing:
            logger.warning(f"Found {len(existing)} existing seed users. Cleaning up...")
            for user_id in existing:
                purge_user(user_id)
            logger.info("Cleanup complete.")

        success_count = 0
        error_count = 0

        for user_data in SEED_USERS:
            try:
                user = User(
                    id=user_data["id"],
                    name=user_data["name"],
                    email=user_data["email"],
                    avatar_url=user_data["avatar_url"]
                )
                db.session.add(user)
                db.session.flush()

                for snack_data in user_data["snacks"]:
                    db.session.add(Snack(user_id=user.id, **snack_data))

                db.session.commit()

                success_count += 1
                logger.info(f"✓ Created user: {user.name} ({user.id}) with {len(user_data['snacks'])} snacks")

            except Exception as e:
                db.session.rollback()
                error_count += 1
                logger.error(f"✗ Error creating user {user_data['name']}: {str(e)}")

        logger.info("\n" + "="*60)
        logger.info("SEEDING COMPLETE!")
        logger.info(f"Successfully created: {success_count} users")
        logger.info(f"Errors: {error_count}")
        logger.info("="*60)

        logger.info(f"\nDatabase Summary:")
        logger.info(f"  Total Users: {User.query.count()}")
        logger.info(f"  Total Snacks: {Snack.query.count()}")


if __name__ == "__main__":
    seed_database()
