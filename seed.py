from datetime import datetime, timedelta, timezone

from headshots.auth import get_password_hash
from headshots.database import SessionLocal, engine, Base
from headshots.models import User, Studio, Prediction, PredictionStatus, Favorite

# Create tables
Base.metadata.create_all(bind=engine)

db = SessionLocal()

# Clear existing data
db.query(Favorite).delete()
db.query(Prediction).delete()
db.query(Studio).delete()
db.query(User).delete()

demo = User(
    email="demo@example.com",
    hashed_password=get_password_hash("demopassword123"),
    display_name="Demo User",
    is_active=True,
)
db.add(demo)
db.flush()

studio = Studio(
    user_id=demo.id,
    name="Demo Studio",
    type="man",
    model_user="TOK",
    model_version="demo-owner/demo-headshots",
    hf_lora="huggingface.co/demo-owner/demo-lora",
    default_hair_style="short",
    default_user_height=180,
    images=["https://example.com/reference-1.jpg"],
)
db.add(studio)
db.flush()

now = datetime.now(timezone.utc)
styles = ["corporate", "casual", "outdoor"]

# Shared, finished predictions for the public gallery
predictions = [
    Prediction(
        studio_id=studio.id,
        external_id=f"demo-{i}",
        status=PredictionStatus.COMPLETED.value,
        result_url=f"/media/demo-{i}.png",
        prompt=f"professional headshot of TOK a man, {styles[i % len(styles)]} look",
        style=styles[i % len(styles)],
        is_shared=True,
        likes_count=i * 2,
        created_at=now - timedelta(days=i),
        completed_at=now - timedelta(days=i),
    )
    for i in range(6)
]

# One still in flight
predictions.append(
    Prediction(
        studio_id=studio.id,
        external_id="demo-processing",
        status=PredictionStatus.PROCESSING.value,
        prompt="professional headshot of TOK a man, studio lighting",
        style="corporate",
    )
)

db.add_all(predictions)
db.commit()

print("Database seeded successfully!")
print(f"  - 1 user ({demo.email} / demopassword123)")
print(f"  - 1 studio ({studio.id})")
print(f"  - {len(predictions)} predictions")

db.close()
