"""One-time DB setup: create tables and seed demo users, achievements and quizzes."""
from edugame.core.security import hash_password
from edugame.db.models import (
    Achievement,
    AchievementCategoryEnum,
    CategoryEnum,
    DifficultyEnum,
    Question,
    Quiz,
    RarityEnum,
    RoleEnum,
    User,
)
from edugame.db.session import Base, get_engine, get_session_factory
from edugame.schemas.achievement import parse_criterion

SAMPLE_ACHIEVEMENTS = [
    ("First Steps", "Complete your first quiz", "🎯", "quiz",
     {"type": "quiz_count", "value": 1}, 50, 100, "common"),
    ("Quiz Master", "Complete 10 quizzes", "🏆", "quiz",
     {"type": "quiz_count", "value": 10}, 200, 300, "uncommon"),
    ("Perfect Score", "Get 100% on any quiz", "⭐", "quiz",
     {"type": "score_achieved", "value": 100}, 100, 200, "rare"),
    ("Streak Master", "Complete quizzes for 7 consecutive days", "🔥", "streak",
     {"type": "streak_days", "value": 7}, 300, 500, "epic"),
    ("Point Collector", "Earn 1000 total points", "💰", "points",
     {"type": "points_earned", "value": 1000}, 400, 400, "uncommon"),
    ("Math Expert", "Complete 5 math quizzes", "🎓", "quiz",
     {"type": "category_mastery", "value": 5, "category": "math"}, 250, 350, "uncommon"),
    ("Level Up", "Reach level 5", "📈", "level",
     {"type": "level_reached", "value": 5}, 500, 600, "epic"),
    ("Science Lover", "Complete 3 science quizzes", "🔬", "quiz",
     {"type": "category_mastery", "value": 3, "category": "science"}, 150, 200, "common"),
    ("History Buff", "Complete 3 history quizzes", "📚", "quiz",
     {"type": "category_mastery", "value": 3, "category": "history"}, 150, 200, "common"),
    ("Language Arts Pro", "Complete 3 language quizzes", "✍️", "quiz",
     {"type": "category_mastery", "value": 3, "category": "language"}, 150, 200, "common"),
]

SAMPLE_QUIZZES = [
    {
        "title": "Basic Arithmetic",
        "description": "Addition, subtraction and multiplication warm-up",
        "category": CategoryEnum.MATH,
        "difficulty": DifficultyEnum.BEGINNER,
        "time_limit_minutes": 5,
        "questions": [
            ("What is 7 + 5?", ["10", "11", "12", "13"], 2, "7 + 5 = 12"),
            ("What is 9 × 3?", ["27", "24", "21", "18"], 0, "9 × 3 = 27"),
            ("What is 15 − 8?", ["6", "7", "8", "9"], 1, "15 − 8 = 7"),
        ],
    },
    {
        "title": "The Solar System",
        "description": "Planets, moons and the Sun",
        "category": CategoryEnum.SCIENCE,
        "difficulty": DifficultyEnum.BEGINNER,
        "time_limit_minutes": 10,
        "questions": [
            ("Which planet is closest to the Sun?", ["Venus", "Mercury", "Mars", "Earth"], 1, None),
            ("Which planet is known as the Red Planet?", ["Jupiter", "Saturn", "Mars", "Neptune"], 2, None),
            ("What is the largest planet?", ["Jupiter", "Saturn", "Uranus", "Earth"], 0, None),
        ],
    },
    {
        "title": "World Capitals",
        "description": "Match countries to their capital cities",
        "category": CategoryEnum.GEOGRAPHY,
        "difficulty": DifficultyEnum.INTERMEDIATE,
        "time_limit_minutes": 8,
        "questions": [
            ("What is the capital of Australia?", ["Sydney", "Melbourne", "Canberra", "Perth"], 2, None),
            ("What is the capital of Canada?", ["Toronto", "Ottawa", "Montreal", "Vancouver"], 1, None),
            ("What is the capital of Kenya?", ["Nairobi", "Mombasa", "Kampala", "Kigali"], 0, None),
        ],
    },
]


# 1. Create all tables
engine = get_engine()
Base.metadata.create_all(bind=engine)
print("✅ All tables created")

session_factory = get_session_factory()
with session_factory() as db:
    # 2. Demo accounts
    demo_users = [
        ("admin@edugame.io", "admin123", "Admin User", RoleEnum.ADMIN),
        ("teacher@edugame.io", "teacher123", "Teacher User", RoleEnum.TEACHER),
        ("student@edugame.io", "student123", "Student User", RoleEnum.STUDENT),
    ]
    users = {}
    for email, password, full_name, role in demo_users:
        user = db.query(User).filter(User.email == email).first()
        if not user:
            user = User(
                email=email,
                hashed_password=hash_password(password),
                full_name=full_name,
                role=role,
            )
            db.add(user)
            db.commit()
            db.refresh(user)
            print(f"✅ Created {role.value}: {email} / {password}")
        else:
            print(f"  {email} already exists")
        users[role] = user

    # 3. Achievement catalogue
    created = 0
    for name, description, icon, category, criterion, points, xp, rarity in SAMPLE_ACHIEVEMENTS:
        if db.query(Achievement).filter(Achievement.name == name).first():
            continue
        parse_criterion(criterion)
        db.add(
            Achievement(
                name=name,
                description=description,
                icon=icon,
                category=AchievementCategoryEnum(category),
                criterion=criterion,
                reward_points=points,
                reward_experience=xp,
                rarity=RarityEnum(rarity),
            )
        )
        created += 1
    db.commit()
    print(f"✅ Seeded {created} achievements ({len(SAMPLE_ACHIEVEMENTS) - created} already present)")

    # 4. Sample quizzes, authored by the demo teacher
    for spec in SAMPLE_QUIZZES:
        if db.query(Quiz).filter(Quiz.title == spec["title"]).first():
            print(f"  Quiz '{spec['title']}' already exists")
            continue
        quiz = Quiz(
            title=spec["title"],
            description=spec["description"],
            category=spec["category"],
            difficulty=spec["difficulty"],
            time_limit_minutes=spec["time_limit_minutes"],
            created_by=users[RoleEnum.TEACHER].id,
        )
        quiz.questions = [
            Question(position=i, text=text, options=options, correct_answer=answer, explanation=why, points=10)
            for i, (text, options, answer, why) in enumerate(spec["questions"])
        ]
        quiz.total_points = sum(q.points for q in quiz.questions)
        db.add(quiz)
        db.commit()
        print(f"✅ Created quiz '{quiz.title}' ({len(quiz.questions)} questions)")

print("\n🎉 Database is ready to use!")
print("   Admin:   admin@edugame.io   / admin123")
print("   Teacher: teacher@edugame.io / teacher123")
print("   Student: student@edugame.io / student123")
