# Mapped entities used by the test suite.
from datetime import datetime
from typing import List, Optional

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(50))
    email: Mapped[str] = mapped_column(String(100))

    articles: Mapped[List["Article"]] = relationship(back_populates="author")


class Article(Base):
    __tablename__ = "articles"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(100))
    views: Mapped[int] = mapped_column(default=0)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(default=None)
    author_id: Mapped[int] = mapped_column(ForeignKey("users.id"))

    author: Mapped[User] = relationship(back_populates="articles")
    comments: Mapped[List["Comment"]] = relationship(back_populates="article")


class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(primary_key=True)
    text: Mapped[str] = mapped_column(String(200))
    article_id: Mapped[int] = mapped_column(ForeignKey("articles.id"))
    author_id: Mapped[int] = mapped_column(ForeignKey("users.id"))

    article: Mapped[Article] = relationship(back_populates="comments")
    author: Mapped[User] = relationship()


def seed(session: Session) -> None:
    alice = User(id=1, name="alice", email="alice@example.com")
    bob = User(id=2, name="bob", email="bob@example.com")
    session.add_all([alice, bob])
    session.add_all(
        [
            Article(id=1, title="Python tips", views=120, author=alice),
            Article(id=2, title="SQL basics", views=15, author=bob),
            Article(id=3, title="Old news", views=40, author=alice, deleted_at=datetime(2020, 1, 1)),
        ]
    )
    session.add_all(
        [
            Comment(id=1, text="great", article_id=1, author_id=2),
            Comment(id=2, text="thanks", article_id=1, author_id=1),
            Comment(id=3, text="meh", article_id=2, author_id=1),
        ]
    )
    session.flush()
