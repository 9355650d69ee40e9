"""
Sample data for the Library Ledger.

Loads a small, realistic library: a curated catalog, named members plus
Faker-generated ones, default settings and a few weeks of loan history.

History is replayed through ``LendingLedger`` with a ``FixedClock`` walked
forward through the loan events, so every counter, status and fine in the
seeded database is exactly what the ledger itself would have produced.
"""

import logging
import random
from datetime import date, timedelta
from typing import Any

from faker import Faker

from ..clock import FixedClock
from ..ledger import LendingLedger
from ..models.member import MemberType
from ..models.settings import FINE_RULES_KEY, LENDING_PERIODS_KEY, FineRules, LendingPeriods
from .book_repository import BookCreateSchema
from .member_repository import MemberCreateSchema
from .session import DatabaseManager

logger = logging.getLogger(__name__)

# title, authors, isbn, publisher, year, genres, copies, location, tags, description
SAMPLE_BOOKS: list[tuple] = [
    ("The Great Gatsby", ["F. Scott Fitzgerald"], "9780743273565", "Scribner", 1925,
     ["Fiction", "Classic", "Literature"], 3, "A1-F2", ["American Dream", "1920s"],
     "A classic American novel set in the Jazz Age."),
    ("To Kill a Mockingbird", ["Harper Lee"], "9780061120084", "J.B. Lippincott & Co.", 1960,
     ["Fiction", "Classic", "Drama"], 5, "B2-C1", ["Justice", "Southern Gothic"],
     "A gripping tale of racial injustice and childhood innocence."),
    ("1984", ["George Orwell"], "9780451524935", "Secker & Warburg", 1949,
     ["Fiction", "Dystopian", "Science Fiction"], 4, "C3-D4", ["Totalitarianism", "Surveillance"],
     "A dystopian social science fiction novel and cautionary tale."),
    ("Pride and Prejudice", ["Jane Austen"], "9780141439518", "T. Egerton", 1813,
     ["Fiction", "Classic", "Romance"], 2, "E1-F2", ["Marriage", "Social Class"],
     "A romantic novel of manners."),
    ("The Catcher in the Rye", ["J.D. Salinger"], "9780316769174", "Little, Brown and Company",
     1951, ["Fiction", "Coming-of-age"], 1, "F5-G6", ["Teenage", "New York"],
     "The story of teenage rebellion and angst."),
    ("Brave New World", ["Aldous Huxley"], "9780060850524", "Chatto & Windus", 1932,
     ["Fiction", "Dystopian", "Science Fiction"], 2, "G7-H8", ["Genetics", "Control"],
     "A dystopian novel set in a futuristic World State."),
    ("The Hobbit", ["J.R.R. Tolkien"], "9780345339683", "George Allen & Unwin", 1937,
     ["Fantasy", "Adventure", "Classic"], 6, "H1-I2", ["Dragons", "Middle-earth"],
     "A fantasy novel about the adventure of Bilbo Baggins."),
    ("Harry Potter and the Sorcerer's Stone", ["J.K. Rowling"], "9780590353427", "Scholastic",
     1997, ["Fantasy", "Young Adult"], 8, "I3-J4", ["Magic", "Hogwarts"],
     "The first book in the Harry Potter series."),
    ("The Lord of the Rings", ["J.R.R. Tolkien"], "9780618640157", "George Allen & Unwin", 1954,
     ["Fantasy", "Epic", "Adventure"], 3, "J5-K6", ["Good vs Evil"],
     "An epic high-fantasy novel."),
    ("Animal Farm", ["George Orwell"], "9780451526342", "Secker & Warburg", 1945,
     ["Fiction", "Political Satire"], 4, "K7-L8", ["Allegory", "Revolution"],
     "An allegorical novella reflecting events leading up to the Russian Revolution."),
    ("The Diary of a Young Girl", ["Anne Frank"], "9780553296983", "Contact Publishing", 1947,
     ["Autobiography", "History"], 2, "L1-M2", ["World War II"],
     "The diary of a Jewish teenager hiding from the Nazis."),
    ("The Alchemist", ["Paulo Coelho"], "9780061122415", "HarperCollins", 1988,
     ["Fiction", "Philosophy"], 5, "M3-N4", ["Journey", "Dreams"],
     "A philosophical book about a shepherd boy's journey."),
    ("Sapiens: A Brief History of Humankind", ["Yuval Noah Harari"], "9780062316097", "Harper",
     2011, ["Non-fiction", "History"], 3, "N5-O6", ["Evolution", "Civilization"],
     "A brief history of the human race."),
    ("Educated: A Memoir", ["Tara Westover"], "9780399590504", "Random House", 2018,
     ["Memoir", "Education"], 2, "O7-P8", ["Family", "Survival"],
     "A memoir about a woman who grows up in a survivalist family."),
    ("The Silent Patient", ["Alex Michaelides"], "9781250301697", "Celadon Books", 2019,
     ["Fiction", "Thriller", "Mystery"], 4, "P1-Q2", ["Psychology", "Suspense"],
     "A psychological thriller."),
    ("Where the Crawdads Sing", ["Delia Owens"], "9780735219090", "G.P. Putnam's Sons", 2018,
     ["Fiction", "Mystery"], 3, "Q3-R4", ["Nature", "Coming-of-age"],
     "A coming-of-age murder mystery set in the marshes of North Carolina."),
    ("The Midnight Library", ["Matt Haig"], "9780525559474", "Viking", 2020,
     ["Fiction", "Fantasy"], 2, "R5-S6", ["Parallel Lives", "Regret"],
     "A fantasy novel about a library between life and death."),
    ("Atomic Habits", ["James Clear"], "9780735211292", "Avery", 2018,
     ["Self-help", "Psychology"], 6, "S7-T8", ["Habits", "Self-improvement"],
     "A practical guide to building good habits and breaking bad ones."),
    ("The Psychology of Money", ["Morgan Housel"], "9780857197689", "Harriman House", 2020,
     ["Finance", "Psychology"], 4, "T1-U2", ["Money", "Investing"],
     "Timeless lessons on wealth, greed, and happiness."),
    ("Clean Code", ["Robert C. Martin"], "9780132350884", "Prentice Hall", 2008,
     ["Programming", "Software Engineering"], 5, "U3-V4", ["Best Practices", "Agile"],
     "A handbook of agile software craftsmanship."),
]

# name, member_code, email, member_type, notes
SAMPLE_MEMBERS: list[tuple] = [
    ("John Smith", "MEM-2024-0001", "john.smith@email.com", "student",
     "Computer Science major, avid reader."),
    ("Emily Johnson", "MEM-2024-0002", "emily.johnson@university.edu", "faculty",
     "English Literature professor."),
    ("Michael Davis", "MEM-2024-0003", "michael.davis@email.com", "public",
     "Retired teacher, visits library weekly."),
    ("Sarah Williams", "MEM-2024-0004", "sarah.williams@email.com", "student",
     "History major, prefers non-fiction."),
    ("David Brown", "MEM-2024-0005", "david.brown@email.com", "public",
     "Local business owner."),
    ("Lisa Anderson", "MEM-2024-0006", "lisa.anderson@university.edu", "faculty",
     "Mathematics professor."),
    ("James Wilson", "MEM-2024-0007", "james.wilson@email.com", "student",
     "Engineering student, likes sci-fi novels."),
    ("Maria Garcia", "MEM-2024-0008", "maria.garcia@email.com", "public",
     "Spanish teacher, bilingual reader."),
    ("Robert Martinez", "MEM-2024-0009", "robert.martinez@email.com", "student",
     "Medical student."),
    ("Jennifer Taylor", "MEM-2024-0010", "jennifer.taylor@email.com", "public",
     "Freelance writer."),
    ("Christopher Thomas", "MEM-2024-0011", "chris.thomas@university.edu", "faculty",
     "Physics professor."),
    ("Amanda White", "MEM-2024-0012", "amanda.white@email.com", "student",
     "Art student."),
    ("Daniel Harris", "MEM-2024-0013", "daniel.harris@email.com", "public",
     "Software developer."),
    ("Michelle Clark", "MEM-2024-0014", "michelle.clark@email.com", "student",
     "Nursing student."),
    ("Kevin Lewis", "MEM-2024-0015", "kevin.lewis@email.com", "public",
     "Accountant."),
]

# book #, member #, lent N days ago, due N days from today, returned N days ago
SAMPLE_LOANS: list[tuple[int, int, int, int, int | None]] = [
    # Still out
    (4, 1, 0, 14, None),
    (5, 4, 0, 14, None),
    (9, 6, 0, 30, None),
    (14, 7, 0, 14, None),
    (16, 12, 0, 14, None),
    # Still out and overdue
    (3, 3, 20, -6, None),
    (15, 10, 35, -7, None),
    # Returned
    (1, 2, 30, -16, 10),
    (2, 5, 25, -11, 8),
    (6, 8, 45, -31, 20),
    (7, 11, 60, -30, 15),
    (8, 13, 90, -76, 70),
    (10, 14, 15, -8, 5),
    (11, 9, 120, -106, 90),
    (12, 15, 75, -61, 40),
    (13, 1, 40, -26, 12),
    (17, 3, 10, 4, 2),
    (18, 6, 30, -16, 1),
    (19, 8, 20, -6, 3),
    (20, 11, 15, -1, 1),
]

DEFAULT_UI_SETTINGS = {
    "theme": "light",
    "language": "en",
    "dateFormat": "MM/dd/yyyy",
    "itemsPerPage": 20,
}


def generate_members(
    count: int, start_number: int, year: int, fake: Faker
) -> list[MemberCreateSchema]:
    """Random members with sequential member codes after the named ones."""
    member_types = list(MemberType)
    members = []
    for number in range(start_number, start_number + count):
        members.append(
            MemberCreateSchema(
                name=fake.name(),
                member_code=f"MEM-{year}-{number:04d}",
                email=fake.unique.email(),
                phone=fake.numerify("555-####"),
                address=fake.address().replace("\n", ", ")[:500],
                member_type=random.choice(member_types),
            )
        )
    return members


def seed_database(
    db_manager: DatabaseManager,
    extra_members: int = 20,
    today: date | None = None,
    seed: int = 42,
) -> dict[str, Any]:
    """
    Populate an initialized, empty database with sample data.

    Args:
        db_manager: Manager for a database whose schema already exists
        extra_members: Faker-generated members added after the named ones
        today: The date history is replayed up to; the system date if omitted
        seed: Seed for Faker and ``random`` so runs are reproducible

    Returns:
        Counts of what was created
    """
    today = today or date.today()
    fake = Faker()
    Faker.seed(seed)
    random.seed(seed)

    clock = FixedClock(today)
    ledger = LendingLedger(db_manager, clock)

    ledger.update_setting(FINE_RULES_KEY, FineRules().to_storage())
    ledger.update_setting(LENDING_PERIODS_KEY, LendingPeriods().to_storage())
    ledger.update_setting("ui", DEFAULT_UI_SETTINGS)

    book_ids = []
    for title, authors, isbn, publisher, year, genres, copies, location, tags, desc in SAMPLE_BOOKS:
        book = ledger.create_book(
            BookCreateSchema(
                title=title,
                authors=authors,
                isbn=isbn,
                publisher=publisher,
                publication_year=year,
                genres=genres,
                total_copies=copies,
                location=location,
                tags=tags,
                description=desc,
            )
        )
        book_ids.append(book.id)
    logger.info("Seeded %d books", len(book_ids))

    member_ids = []
    for name, code, email, member_type, notes in SAMPLE_MEMBERS:
        member = ledger.create_member(
            MemberCreateSchema(
                name=name, member_code=code, email=email, member_type=member_type, notes=notes
            )
        )
        member_ids.append(member.id)
    for data in generate_members(extra_members, len(SAMPLE_MEMBERS) + 1, today.year, fake):
        member_ids.append(ledger.create_member(data).id)
    logger.info("Seeded %d members", len(member_ids))

    # Replay lends and returns in date order; lends first on a shared day
    events = []
    for index, (book_no, member_no, lent_ago, due_in, returned_ago) in enumerate(SAMPLE_LOANS):
        events.append((-lent_ago, 0, index))
        if returned_ago is not None:
            events.append((-returned_ago, 1, index))
    events.sort()

    transaction_ids: dict[int, int] = {}
    returned = 0
    for offset, kind, index in events:
        clock.set(today + timedelta(days=offset))
        book_no, member_no, _lent_ago, due_in, _returned_ago = SAMPLE_LOANS[index]
        if kind == 0:
            tx = ledger.lend(
                book_ids[book_no - 1],
                member_ids[member_no - 1],
                due_date=today + timedelta(days=due_in),
            )
            transaction_ids[index] = tx.id
        else:
            ledger.return_book(transaction_ids[index])
            returned += 1
    clock.set(today)

    summary = {
        "books": len(book_ids),
        "members": len(member_ids),
        "transactions": len(transaction_ids),
        "returned": returned,
        "active_loans": len(transaction_ids) - returned,
    }
    logger.info("Sample data loaded: %s", summary)
    return summary
