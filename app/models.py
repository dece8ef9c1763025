from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKeyConstraint,
    Index,
    Integer,
    JSON,
    LargeBinary,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship

Base = declarative_base()
metadata = Base.metadata

ROLES = ("ADMIN", "BARBER", "STYLIST", "CLIENT")
GENDERS = ("MALE", "FEMALE", "BOTH", "UNISEX")
DAYS_OF_WEEK = (
    "MONDAY",
    "TUESDAY",
    "WEDNESDAY",
    "THURSDAY",
    "FRIDAY",
    "SATURDAY",
    "SUNDAY",
)
APPOINTMENT_STATUSES = ("PENDING", "CONFIRMED", "COMPLETED", "CANCELLED", "NO_SHOW")
POST_STATUSES = ("PENDING", "APPROVED", "REJECTED")
POST_TYPES = ("BARBER_WORK", "CLIENT_SHARE")
AUTHOR_TYPES = ("BARBER", "CLIENT")
NOTIFICATION_TYPES = (
    "APPOINTMENT_REMINDER",
    "APPOINTMENT_CONFIRMED",
    "APPOINTMENT_CANCELLED",
    "POST_LIKE",
    "POST_COMMENT",
    "POST_APPROVED",
    "POST_REJECTED",
    "NEW_REVIEW",
    "NEW_MESSAGE",
)
PROMOTION_STATUSES = ("SCHEDULED", "ACTIVE", "EXPIRED", "CANCELLED")
INVOICE_TYPES = ("BARBER_PAYMENT", "CLIENT_SERVICE")
PAYMENT_STATUSES = ("PENDING", "PAID", "OVERDUE", "CANCELLED")
MEDIA_TYPES = ("PHOTO", "VIDEO")


def _iso(value):
    return value.isoformat() if value else None


class User(Base):
    __tablename__ = "users"
    __table_args__ = (Index("ix_users_email", "email", unique=True),)

    id = mapped_column(Integer, primary_key=True)
    name = mapped_column(String(120))
    email = mapped_column(String(255), nullable=False)
    password_hash = mapped_column(LargeBinary(72))
    role = mapped_column(Enum(*ROLES, name="user_role"), nullable=False, default="CLIENT")
    phone = mapped_column(String(32))
    image = mapped_column(String(512))
    gender = mapped_column(Enum(*GENDERS, name="user_gender"))
    terms_accepted = mapped_column(Boolean, nullable=False, default=False)
    terms_version = mapped_column(String(20))
    terms_accepted_at = mapped_column(DateTime)
    legal_accepted_version = mapped_column(String(20))
    legal_accepted_at = mapped_column(DateTime)
    last_login = mapped_column(DateTime)
    created_at = mapped_column(DateTime, nullable=False, default=datetime.now)
    updated_at = mapped_column(
        DateTime, nullable=False, default=datetime.now, onupdate=datetime.now
    )

    barber: Mapped[Optional["Barber"]] = relationship(
        "Barber", uselist=False, back_populates="user"
    )
    appointments: Mapped[List["Appointment"]] = relationship(
        "Appointment", uselist=True, back_populates="client"
    )
    reviews: Mapped[List["Review"]] = relationship(
        "Review", uselist=True, back_populates="client"
    )
    posts: Mapped[List["Post"]] = relationship(
        "Post", uselist=True, back_populates="author"
    )
    push_subscriptions: Mapped[List["PushSubscription"]] = relationship(
        "PushSubscription", uselist=True, back_populates="user", cascade="all, delete-orphan"
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "phone": self.phone,
            "image": self.image,
            "gender": self.gender,
            "terms_accepted": self.terms_accepted,
            "terms_version": self.terms_version,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Barber(Base):
    __tablename__ = "barbers"
    __table_args__ = (
        ForeignKeyConstraint(
            ["user_id"], ["users.id"], ondelete="CASCADE", name="fk_barber_user"
        ),
        Index("ix_barbers_user_id", "user_id", unique=True),
    )

    id = mapped_column(Integer, primary_key=True)
    user_id = mapped_column(Integer, nullable=False)
    bio = mapped_column(Text)
    specialties = mapped_column(String(255))
    hourly_rate = mapped_column(Float)
    profile_image = mapped_column(String(512))
    phone = mapped_column(String(32))
    rating = mapped_column(Float, nullable=False, default=0)
    gender = mapped_column(Enum(*GENDERS, name="barber_gender"), nullable=False, default="BOTH")
    is_active = mapped_column(Boolean, nullable=False, default=True)
    facebook_url = mapped_column(String(512))
    instagram_url = mapped_column(String(512))
    twitter_url = mapped_column(String(512))
    tiktok_url = mapped_column(String(512))
    youtube_url = mapped_column(String(512))
    whatsapp_url = mapped_column(String(512))
    contact_email = mapped_column(String(255))
    zelle_email = mapped_column(String(255))
    zelle_phone = mapped_column(String(32))
    cashapp_tag = mapped_column(String(64))
    created_at = mapped_column(DateTime, nullable=False, default=datetime.now)
    updated_at = mapped_column(
        DateTime, nullable=False, default=datetime.now, onupdate=datetime.now
    )

    user: Mapped["User"] = relationship("User", back_populates="barber")
    services: Mapped[List["Service"]] = relationship(
        "Service", uselist=True, back_populates="barber", cascade="all, delete-orphan"
    )
    availability: Mapped[List["Availability"]] = relationship(
        "Availability", uselist=True, back_populates="barber", cascade="all, delete-orphan"
    )
    days_off: Mapped[List["DayOff"]] = relationship(
        "DayOff", uselist=True, back_populates="barber", cascade="all, delete-orphan"
    )
    media: Mapped[List["BarberMedia"]] = relationship(
        "BarberMedia", uselist=True, back_populates="barber", cascade="all, delete-orphan"
    )
    appointments: Mapped[List["Appointment"]] = relationship(
        "Appointment", uselist=True, back_populates="barber"
    )
    reviews: Mapped[List["Review"]] = relationship(
        "Review", uselist=True, back_populates="barber"
    )

    def to_dict(self, include_user=True):
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "bio": self.bio,
            "specialties": self.specialties,
            "hourly_rate": self.hourly_rate,
            "profile_image": self.profile_image,
            "phone": self.phone,
            "rating": self.rating,
            "gender": self.gender,
            "is_active": self.is_active,
            "facebook_url": self.facebook_url,
            "instagram_url": self.instagram_url,
            "twitter_url": self.twitter_url,
            "tiktok_url": self.tiktok_url,
            "youtube_url": self.youtube_url,
            "whatsapp_url": self.whatsapp_url,
            "contact_email": self.contact_email,
            "zelle_email": self.zelle_email,
            "zelle_phone": self.zelle_phone,
            "cashapp_tag": self.cashapp_tag,
            "created_at": _iso(self.created_at),
        }
        if include_user and self.user is not None:
            data["user"] = {
                "id": self.user.id,
                "name": self.user.name,
                "email": self.user.email,
                "image": self.user.image,
                "phone": self.user.phone,
            }
        return data


class Service(Base):
    __tablename__ = "services"
    __table_args__ = (
        ForeignKeyConstraint(
            ["barber_id"], ["barbers.id"], ondelete="CASCADE", name="fk_service_barber"
        ),
        Index("ix_services_barber_id", "barber_id"),
    )

    id = mapped_column(Integer, primary_key=True)
    name = mapped_column(String(120), nullable=False)
    description = mapped_column(Text)
    duration = mapped_column(Integer, nullable=False)
    price = mapped_column(Float, nullable=False)
    image = mapped_column(String(512))
    barber_id = mapped_column(Integer)
    gender = mapped_column(Enum(*GENDERS, name="service_gender"), nullable=False, default="UNISEX")
    is_active = mapped_column(Boolean, nullable=False, default=True)
    created_at = mapped_column(DateTime, nullable=False, default=datetime.now)
    updated_at = mapped_column(
        DateTime, nullable=False, default=datetime.now, onupdate=datetime.now
    )

    barber: Mapped[Optional["Barber"]] = relationship("Barber", back_populates="services")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "duration": self.duration,
            "price": self.price,
            "image": self.image,
            "barber_id": self.barber_id,
            "gender": self.gender,
            "is_active": self.is_active,
        }


class Availability(Base):
    __tablename__ = "availability"
    __table_args__ = (
        ForeignKeyConstraint(
            ["barber_id"], ["barbers.id"], ondelete="CASCADE", name="fk_availability_barber"
        ),
        Index("ux_availability_barber_day", "barber_id", "day_of_week", unique=True),
    )

    id = mapped_column(Integer, primary_key=True)
    barber_id = mapped_column(Integer, nullable=False)
    day_of_week = mapped_column(Enum(*DAYS_OF_WEEK, name="day_of_week"), nullable=False)
    start_time = mapped_column(String(5), nullable=False)
    end_time = mapped_column(String(5), nullable=False)
    is_available = mapped_column(Boolean, nullable=False, default=True)

    barber: Mapped["Barber"] = relationship("Barber", back_populates="availability")

    def to_dict(self):
        return {
            "id": self.id,
            "barber_id": self.barber_id,
            "day_of_week": self.day_of_week,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "is_available": self.is_available,
        }


class DayOff(Base):
    __tablename__ = "days_off"
    __table_args__ = (
        ForeignKeyConstraint(
            ["barber_id"], ["barbers.id"], ondelete="CASCADE", name="fk_day_off_barber"
        ),
        Index("ux_days_off_barber_date", "barber_id", "date", unique=True),
    )

    id = mapped_column(Integer, primary_key=True)
    barber_id = mapped_column(Integer, nullable=False)
    date = mapped_column(Date, nullable=False)
    reason = mapped_column(String(255))
    created_at = mapped_column(DateTime, nullable=False, default=datetime.now)

    barber: Mapped["Barber"] = relationship("Barber", back_populates="days_off")

    def to_dict(self):
        return {
            "id": self.id,
            "barber_id": self.barber_id,
            "date": self.date.isoformat(),
            "reason": self.reason,
        }


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        ForeignKeyConstraint(
            ["client_id"], ["users.id"], ondelete="CASCADE", name="fk_appointment_client"
        ),
        ForeignKeyConstraint(
            ["barber_id"], ["barbers.id"], ondelete="CASCADE", name="fk_appointment_barber"
        ),
        ForeignKeyConstraint(
            ["service_id"], ["services.id"], ondelete="CASCADE", name="fk_appointment_service"
        ),
        Index("ix_appointments_barber_date", "barber_id", "date"),
        Index("ix_appointments_client_id", "client_id"),
        Index("ix_appointments_status", "status"),
    )

    id = mapped_column(Integer, primary_key=True)
    client_id = mapped_column(Integer, nullable=False)
    barber_id = mapped_column(Integer, nullable=False)
    service_id = mapped_column(Integer, nullable=False)
    # Full start datetime; `time` keeps the normalised HH:MM string as entered
    date = mapped_column(DateTime, nullable=False)
    time = mapped_column(String(5), nullable=False)
    status = mapped_column(
        Enum(*APPOINTMENT_STATUSES, name="appointment_status"),
        nullable=False,
        default="PENDING",
    )
    notes = mapped_column(Text)
    payment_method = mapped_column(String(32))
    payment_reference = mapped_column(String(255))
    payment_status = mapped_column(String(32))
    cancelled_at = mapped_column(DateTime)
    cancellation_reason = mapped_column(String(255))
    sms_confirmation_sent = mapped_column(Boolean, nullable=False, default=False)
    auto_confirmed = mapped_column(Boolean, nullable=False, default=False)
    notification_24h_sent = mapped_column(Boolean, nullable=False, default=False)
    notification_12h_sent = mapped_column(Boolean, nullable=False, default=False)
    notification_2h_sent = mapped_column(Boolean, nullable=False, default=False)
    notification_30m_sent = mapped_column(Boolean, nullable=False, default=False)
    thank_you_sent = mapped_column(Boolean, nullable=False, default=False)
    created_at = mapped_column(DateTime, nullable=False, default=datetime.now)
    updated_at = mapped_column(
        DateTime, nullable=False, default=datetime.now, onupdate=datetime.now
    )

    client: Mapped["User"] = relationship("User", back_populates="appointments")
    barber: Mapped["Barber"] = relationship("Barber", back_populates="appointments")
    service: Mapped["Service"] = relationship("Service")
    review: Mapped[Optional["Review"]] = relationship(
        "Review", uselist=False, back_populates="appointment"
    )

    def to_dict(self):
        data = {
            "id": self.id,
            "client_id": self.client_id,
            "barber_id": self.barber_id,
            "service_id": self.service_id,
            "date": _iso(self.date),
            "time": self.time,
            "status": self.status,
            "notes": self.notes,
            "payment_method": self.payment_method,
            "payment_reference": self.payment_reference,
            "payment_status": self.payment_status,
            "cancelled_at": _iso(self.cancelled_at),
            "cancellation_reason": self.cancellation_reason,
            "sms_confirmation_sent": self.sms_confirmation_sent,
            "auto_confirmed": self.auto_confirmed,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if self.client is not None:
            data["client"] = {
                "id": self.client.id,
                "name": self.client.name,
                "email": self.client.email,
                "phone": self.client.phone,
                "image": self.client.image,
            }
        if self.barber is not None:
            data["barber"] = {
                "id": self.barber.id,
                "user_id": self.barber.user_id,
                "name": self.barber.user.name if self.barber.user else None,
                "profile_image": self.barber.profile_image,
            }
        if self.service is not None:
            data["service"] = self.service.to_dict()
        return data


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        ForeignKeyConstraint(
            ["appointment_id"], ["appointments.id"], ondelete="SET NULL", name="fk_review_appointment"
        ),
        ForeignKeyConstraint(
            ["client_id"], ["users.id"], ondelete="CASCADE", name="fk_review_client"
        ),
        ForeignKeyConstraint(
            ["barber_id"], ["barbers.id"], ondelete="CASCADE", name="fk_review_barber"
        ),
        Index("ux_reviews_appointment_id", "appointment_id", unique=True),
        Index("ix_reviews_barber_id", "barber_id"),
    )

    id = mapped_column(Integer, primary_key=True)
    # Quick ratings are not tied to an appointment
    appointment_id = mapped_column(Integer)
    client_id = mapped_column(Integer, nullable=False)
    barber_id = mapped_column(Integer, nullable=False)
    rating = mapped_column(Integer, nullable=False)
    comment = mapped_column(Text)
    admin_response = mapped_column(Text)
    admin_responded_at = mapped_column(DateTime)
    is_quick_rating = mapped_column(Boolean, nullable=False, default=False)
    created_at = mapped_column(DateTime, nullable=False, default=datetime.now)
    updated_at = mapped_column(
        DateTime, nullable=False, default=datetime.now, onupdate=datetime.now
    )

    appointment: Mapped[Optional["Appointment"]] = relationship(
        "Appointment", back_populates="review"
    )
    client: Mapped["User"] = relationship("User", back_populates="reviews")
    barber: Mapped["Barber"] = relationship("Barber", back_populates="reviews")

    def to_dict(self):
        return {
            "id": self.id,
            "appointment_id": self.appointment_id,
            "client_id": self.client_id,
            "barber_id": self.barber_id,
            "rating": self.rating,
            "comment": self.comment,
            "admin_response": self.admin_response,
            "admin_responded_at": _iso(self.admin_responded_at),
            "is_quick_rating": self.is_quick_rating,
            "created_at": _iso(self.created_at),
            "client": {
                "id": self.client.id,
                "name": self.client.name,
                "image": self.client.image,
            }
            if self.client
            else None,
            "barber": {
                "id": self.barber.id,
                "name": self.barber.user.name if self.barber.user else None,
            }
            if self.barber
            else None,
        }


class ReviewDeletionLog(Base):
    __tablename__ = "review_deletion_logs"
    __table_args__ = (Index("ix_review_deletion_logs_deleted_at", "deleted_at"),)

    id = mapped_column(Integer, primary_key=True)
    review_id = mapped_column(Integer, nullable=False)
    appointment_id = mapped_column(Integer)
    barber_id = mapped_column(Integer, nullable=False)
    client_id = mapped_column(Integer, nullable=False)
    admin_user_id = mapped_column(Integer, nullable=False)
    rating = mapped_column(Integer, nullable=False)
    comment = mapped_column(Text)
    review_created_at = mapped_column(DateTime)
    reason = mapped_column(String(500), nullable=False)
    deleted_at = mapped_column(DateTime, nullable=False, default=datetime.now)

    def to_dict(self):
        return {
            "id": self.id,
            "review_id": self.review_id,
            "appointment_id": self.appointment_id,
            "barber_id": self.barber_id,
            "client_id": self.client_id,
            "admin_user_id": self.admin_user_id,
            "rating": self.rating,
            "comment": self.comment,
            "review_created_at": _iso(self.review_created_at),
            "reason": self.reason,
            "deleted_at": _iso(self.deleted_at),
        }


class Post(Base):
    __tablename__ = "posts"
    __table_args__ = (
        ForeignKeyConstraint(
            ["author_id"], ["users.id"], ondelete="CASCADE", name="fk_post_author"
        ),
        ForeignKeyConstraint(
            ["barber_id"], ["barbers.id"], ondelete="SET NULL", name="fk_post_barber"
        ),
        Index("ix_posts_status_created", "status", "created_at"),
    )

    id = mapped_column(Integer, primary_key=True)
    author_id = mapped_column(Integer, nullable=False)
    author_type = mapped_column(Enum(*AUTHOR_TYPES, name="author_type"), nullable=False)
    post_type = mapped_column(Enum(*POST_TYPES, name="post_type"), nullable=False)
    media_url = mapped_column(String(1024), nullable=False)
    media_type = mapped_column(Enum(*MEDIA_TYPES, name="post_media_type"), nullable=False, default="PHOTO")
    caption = mapped_column(Text)
    hashtags = mapped_column(JSON)
    barber_id = mapped_column(Integer)
    status = mapped_column(Enum(*POST_STATUSES, name="post_status"), nullable=False, default="PENDING")
    rejection_reason = mapped_column(String(500))
    likes = mapped_column(Integer, nullable=False, default=0)
    view_count = mapped_column(Integer, nullable=False, default=0)
    is_active = mapped_column(Boolean, nullable=False, default=True)
    created_at = mapped_column(DateTime, nullable=False, default=datetime.now)
    updated_at = mapped_column(
        DateTime, nullable=False, default=datetime.now, onupdate=datetime.now
    )

    author: Mapped["User"] = relationship("User", back_populates="posts")
    barber: Mapped[Optional["Barber"]] = relationship("Barber")
    comments: Mapped[List["Comment"]] = relationship(
        "Comment",
        uselist=True,
        back_populates="post",
        cascade="all, delete-orphan",
        order_by="Comment.created_at.desc()",
    )
    post_likes: Mapped[List["PostLike"]] = relationship(
        "PostLike", uselist=True, back_populates="post", cascade="all, delete-orphan"
    )

    def to_dict(self, user_id=None):
        return {
            "id": self.id,
            "author_id": self.author_id,
            "author_type": self.author_type,
            "post_type": self.post_type,
            "media_url": self.media_url,
            "media_type": self.media_type,
            "caption": self.caption,
            "hashtags": self.hashtags or [],
            "barber_id": self.barber_id,
            "status": self.status,
            "rejection_reason": self.rejection_reason,
            "likes": self.likes,
            "view_count": self.view_count,
            "comment_count": len(self.comments),
            "liked_by_me": any(like.user_id == user_id for like in self.post_likes)
            if user_id
            else False,
            "created_at": _iso(self.created_at),
            "author": {
                "id": self.author.id,
                "name": self.author.name,
                "image": self.author.image,
                "role": self.author.role,
            }
            if self.author
            else None,
        }


class PostLike(Base):
    __tablename__ = "post_likes"
    __table_args__ = (
        ForeignKeyConstraint(
            ["post_id"], ["posts.id"], ondelete="CASCADE", name="fk_post_like_post"
        ),
        ForeignKeyConstraint(
            ["user_id"], ["users.id"], ondelete="CASCADE", name="fk_post_like_user"
        ),
        Index("ux_post_likes_user_post", "user_id", "post_id", unique=True),
    )

    id = mapped_column(Integer, primary_key=True)
    user_id = mapped_column(Integer, nullable=False)
    post_id = mapped_column(Integer, nullable=False)
    created_at = mapped_column(DateTime, nullable=False, default=datetime.now)

    post: Mapped["Post"] = relationship("Post", back_populates="post_likes")


class Comment(Base):
    __tablename__ = "comments"
    __table_args__ = (
        ForeignKeyConstraint(
            ["post_id"], ["posts.id"], ondelete="CASCADE", name="fk_comment_post"
        ),
        ForeignKeyConstraint(
            ["author_id"], ["users.id"], ondelete="CASCADE", name="fk_comment_author"
        ),
        Index("ix_comments_post_id", "post_id"),
    )

    id = mapped_column(Integer, primary_key=True)
    post_id = mapped_column(Integer, nullable=False)
    author_id = mapped_column(Integer, nullable=False)
    content = mapped_column(Text, nullable=False)
    created_at = mapped_column(DateTime, nullable=False, default=datetime.now)

    post: Mapped["Post"] = relationship("Post", back_populates="comments")
    author: Mapped["User"] = relationship("User")

    def to_dict(self):
        return {
            "id": self.id,
            "post_id": self.post_id,
            "author_id": self.author_id,
            "content": self.content,
            "created_at": _iso(self.created_at),
            "author": {
                "id": self.author.id,
                "name": self.author.name,
                "image": self.author.image,
                "role": self.author.role,
            }
            if self.author
            else None,
        }


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (
        ForeignKeyConstraint(
            ["sender_id"], ["users.id"], ondelete="CASCADE", name="fk_message_sender"
        ),
        ForeignKeyConstraint(
            ["recipient_id"], ["users.id"], ondelete="CASCADE", name="fk_message_recipient"
        ),
        Index("ix_messages_recipient_id", "recipient_id"),
        Index("ix_messages_sender_id", "sender_id"),
    )

    id = mapped_column(Integer, primary_key=True)
    sender_id = mapped_column(Integer, nullable=False)
    recipient_id = mapped_column(Integer, nullable=False)
    subject = mapped_column(String(255))
    content = mapped_column(Text, nullable=False)
    is_read = mapped_column(Boolean, nullable=False, default=False)
    created_at = mapped_column(DateTime, nullable=False, default=datetime.now)

    sender: Mapped["User"] = relationship("User", foreign_keys=[sender_id])
    recipient: Mapped["User"] = relationship("User", foreign_keys=[recipient_id])

    def to_dict(self):
        return {
            "id": self.id,
            "sender_id": self.sender_id,
            "recipient_id": self.recipient_id,
            "subject": self.subject,
            "content": self.content,
            "is_read": self.is_read,
            "created_at": _iso(self.created_at),
            "sender": {"id": self.sender.id, "name": self.sender.name, "image": self.sender.image}
            if self.sender
            else None,
            "recipient": {
                "id": self.recipient.id,
                "name": self.recipient.name,
                "image": self.recipient.image,
            }
            if self.recipient
            else None,
        }


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        ForeignKeyConstraint(
            ["user_id"], ["users.id"], ondelete="CASCADE", name="fk_notification_user"
        ),
        Index("ix_notifications_user_read", "user_id", "is_read"),
    )

    id = mapped_column(Integer, primary_key=True)
    user_id = mapped_column(Integer, nullable=False)
    type = mapped_column(Enum(*NOTIFICATION_TYPES, name="notification_type"), nullable=False)
    title = mapped_column(String(255), nullable=False)
    message = mapped_column(Text, nullable=False)
    link = mapped_column(String(512))
    post_id = mapped_column(Integer)
    comment_id = mapped_column(Integer)
    is_read = mapped_column(Boolean, nullable=False, default=False)
    created_at = mapped_column(DateTime, nullable=False, default=datetime.now)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "link": self.link,
            "post_id": self.post_id,
            "comment_id": self.comment_id,
            "is_read": self.is_read,
            "created_at": _iso(self.created_at),
        }


class PushSubscription(Base):
    __tablename__ = "push_subscriptions"
    __table_args__ = (
        ForeignKeyConstraint(
            ["user_id"], ["users.id"], ondelete="CASCADE", name="fk_push_subscription_user"
        ),
        Index("ux_push_subscriptions_endpoint", "endpoint", unique=True),
    )

    id = mapped_column(Integer, primary_key=True)
    user_id = mapped_column(Integer, nullable=False)
    endpoint = mapped_column(String(768), nullable=False)
    p256dh = mapped_column(String(255), nullable=False)
    auth = mapped_column(String(255), nullable=False)
    created_at = mapped_column(DateTime, nullable=False, default=datetime.now)

    user: Mapped["User"] = relationship("User", back_populates="push_subscriptions")


class Promotion(Base):
    __tablename__ = "promotions"
    __table_args__ = (Index("ix_promotions_status_dates", "status", "start_date", "end_date"),)

    id = mapped_column(Integer, primary_key=True)
    title = mapped_column(String(255), nullable=False)
    message = mapped_column(Text, nullable=False)
    discount = mapped_column(String(64))
    start_date = mapped_column(DateTime, nullable=False)
    end_date = mapped_column(DateTime, nullable=False)
    status = mapped_column(
        Enum(*PROMOTION_STATUSES, name="promotion_status"), nullable=False, default="SCHEDULED"
    )
    # NULL targets every user
    target_role = mapped_column(Enum(*ROLES, name="promotion_target_role"))
    sent_count = mapped_column(Integer, nullable=False, default=0)
    created_by = mapped_column(Integer)
    created_at = mapped_column(DateTime, nullable=False, default=datetime.now)
    updated_at = mapped_column(
        DateTime, nullable=False, default=datetime.now, onupdate=datetime.now
    )

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "discount": self.discount,
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "status": self.status,
            "target_role": self.target_role,
            "sent_count": self.sent_count,
            "is_active": self.status == "ACTIVE",
            "created_at": _iso(self.created_at),
        }


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (
        ForeignKeyConstraint(
            ["recipient_id"], ["users.id"], ondelete="SET NULL", name="fk_invoice_recipient"
        ),
        Index("ux_invoices_number", "invoice_number", unique=True),
        Index("ix_invoices_appointment_id", "appointment_id"),
    )

    id = mapped_column(Integer, primary_key=True)
    invoice_number = mapped_column(String(32), nullable=False)
    type = mapped_column(Enum(*INVOICE_TYPES, name="invoice_type"), nullable=False)
    status = mapped_column(Enum("PENDING", "PAID", "CANCELLED", name="invoice_status"), nullable=False, default="PENDING")
    barber_payment_id = mapped_column(Integer)
    appointment_id = mapped_column(Integer)
    issuer_name = mapped_column(String(255), nullable=False)
    issuer_address = mapped_column(String(255))
    issuer_phone = mapped_column(String(32))
    issuer_email = mapped_column(String(255))
    recipient_id = mapped_column(Integer)
    recipient_name = mapped_column(String(255), nullable=False)
    recipient_email = mapped_column(String(255))
    recipient_phone = mapped_column(String(32))
    amount = mapped_column(Float, nullable=False)
    description = mapped_column(Text)
    items = mapped_column(JSON)
    issue_date = mapped_column(DateTime, nullable=False, default=datetime.now)
    due_date = mapped_column(DateTime)
    is_paid = mapped_column(Boolean, nullable=False, default=False)
    paid_at = mapped_column(DateTime)
    created_at = mapped_column(DateTime, nullable=False, default=datetime.now)
    updated_at = mapped_column(
        DateTime, nullable=False, default=datetime.now, onupdate=datetime.now
    )

    recipient: Mapped[Optional["User"]] = relationship("User")

    def to_dict(self):
        return {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "type": self.type,
            "status": self.status,
            "barber_payment_id": self.barber_payment_id,
            "appointment_id": self.appointment_id,
            "issuer_name": self.issuer_name,
            "issuer_address": self.issuer_address,
            "issuer_phone": self.issuer_phone,
            "issuer_email": self.issuer_email,
            "recipient_id": self.recipient_id,
            "recipient_name": self.recipient_name,
            "recipient_email": self.recipient_email,
            "recipient_phone": self.recipient_phone,
            "amount": self.amount,
            "description": self.description,
            "items": self.items or [],
            "issue_date": _iso(self.issue_date),
            "due_date": _iso(self.due_date),
            "is_paid": self.is_paid,
            "paid_at": _iso(self.paid_at),
            "created_at": _iso(self.created_at),
        }


class InvoiceItemTemplate(Base):
    __tablename__ = "invoice_item_templates"

    id = mapped_column(Integer, primary_key=True)
    description = mapped_column(String(255), nullable=False)
    price = mapped_column(Float, nullable=False)
    created_at = mapped_column(DateTime, nullable=False, default=datetime.now)

    def to_dict(self):
        return {"id": self.id, "description": self.description, "price": self.price}


class BarberPayment(Base):
    __tablename__ = "barber_payments"
    __table_args__ = (
        ForeignKeyConstraint(
            ["barber_id"], ["barbers.id"], ondelete="CASCADE", name="fk_barber_payment_barber"
        ),
        Index("ix_barber_payments_barber_id", "barber_id"),
    )

    id = mapped_column(Integer, primary_key=True)
    barber_id = mapped_column(Integer, nullable=False)
    amount = mapped_column(Float, nullable=False)
    week_start = mapped_column(DateTime, nullable=False)
    week_end = mapped_column(DateTime, nullable=False)
    status = mapped_column(Enum(*PAYMENT_STATUSES, name="payment_status"), nullable=False, default="PENDING")
    notes = mapped_column(Text)
    paid_at = mapped_column(DateTime)
    created_at = mapped_column(DateTime, nullable=False, default=datetime.now)

    barber: Mapped["Barber"] = relationship("Barber")

    def to_dict(self):
        return {
            "id": self.id,
            "barber_id": self.barber_id,
            "amount": self.amount,
            "week_start": _iso(self.week_start),
            "week_end": _iso(self.week_end),
            "status": self.status,
            "notes": self.notes,
            "paid_at": _iso(self.paid_at),
            "created_at": _iso(self.created_at),
            "barber": self.barber.to_dict() if self.barber else None,
        }


class ManualPayment(Base):
    __tablename__ = "manual_payments"
    __table_args__ = (
        ForeignKeyConstraint(
            ["barber_id"], ["barbers.id"], ondelete="CASCADE", name="fk_manual_payment_barber"
        ),
        Index("ix_manual_payments_barber_date", "barber_id", "date"),
    )

    id = mapped_column(Integer, primary_key=True)
    barber_id = mapped_column(Integer, nullable=False)
    amount = mapped_column(Float, nullable=False)
    payment_method = mapped_column(String(32), nullable=False)
    description = mapped_column(String(500))
    client_name = mapped_column(String(255))
    date = mapped_column(DateTime, nullable=False, default=datetime.now)
    created_at = mapped_column(DateTime, nullable=False, default=datetime.now)

    def to_dict(self):
        return {
            "id": self.id,
            "barber_id": self.barber_id,
            "amount": self.amount,
            "payment_method": self.payment_method,
            "description": self.description,
            "client_name": self.client_name,
            "date": _iso(self.date),
        }


class Expense(Base):
    __tablename__ = "expenses"

    id = mapped_column(Integer, primary_key=True)
    category = mapped_column(String(64), nullable=False)
    description = mapped_column(String(500))
    amount = mapped_column(Float, nullable=False)
    date = mapped_column(DateTime, nullable=False, default=datetime.now)
    created_at = mapped_column(DateTime, nullable=False, default=datetime.now)

    def to_dict(self):
        return {
            "id": self.id,
            "category": self.category,
            "description": self.description,
            "amount": self.amount,
            "date": _iso(self.date),
        }


class Settings(Base):
    __tablename__ = "settings"

    id = mapped_column(Integer, primary_key=True)
    shop_name = mapped_column(String(255), nullable=False, default="JBookMe")
    address = mapped_column(String(255))
    phone = mapped_column(String(32))
    email = mapped_column(String(255))
    latitude = mapped_column(Float)
    longitude = mapped_column(Float)
    facebook = mapped_column(String(512))
    instagram = mapped_column(String(512))
    twitter = mapped_column(String(512))
    tiktok = mapped_column(String(512))
    youtube = mapped_column(String(512))
    whatsapp = mapped_column(String(512))
    male_gender_image = mapped_column(String(1024))
    female_gender_image = mapped_column(String(1024))
    updated_at = mapped_column(
        DateTime, nullable=False, default=datetime.now, onupdate=datetime.now
    )

    def to_dict(self):
        return {
            "id": self.id,
            "shop_name": self.shop_name,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "facebook": self.facebook,
            "instagram": self.instagram,
            "twitter": self.twitter,
            "tiktok": self.tiktok,
            "youtube": self.youtube,
            "whatsapp": self.whatsapp,
            "male_gender_image": self.male_gender_image,
            "female_gender_image": self.female_gender_image,
        }


class SocialMediaClick(Base):
    __tablename__ = "social_media_clicks"
    __table_args__ = (Index("ix_social_media_clicks_network", "network"),)

    id = mapped_column(Integer, primary_key=True)
    user_id = mapped_column(Integer)
    network = mapped_column(String(32), nullable=False)
    url = mapped_column(String(1024), nullable=False)
    created_at = mapped_column(DateTime, nullable=False, default=datetime.now)


class GalleryImage(Base):
    __tablename__ = "gallery_images"
    __table_args__ = (Index("ix_gallery_images_order", "sort_order"),)

    id = mapped_column(Integer, primary_key=True)
    media_url = mapped_column(String(1024), nullable=False)
    title = mapped_column(String(255), nullable=False)
    description = mapped_column(Text)
    tags = mapped_column(JSON)
    gender = mapped_column(Enum(*GENDERS, name="gallery_gender"))
    sort_order = mapped_column(Integer, nullable=False, default=0)
    is_active = mapped_column(Boolean, nullable=False, default=True)
    created_at = mapped_column(DateTime, nullable=False, default=datetime.now)

    def to_dict(self):
        return {
            "id": self.id,
            "media_url": self.media_url,
            "title": self.title,
            "description": self.description,
            "tags": self.tags or [],
            "gender": self.gender,
            "order": self.sort_order,
            "is_active": self.is_active,
            "created_at": _iso(self.created_at),
        }


class BarberMedia(Base):
    __tablename__ = "barber_media"
    __table_args__ = (
        ForeignKeyConstraint(
            ["barber_id"], ["barbers.id"], ondelete="CASCADE", name="fk_barber_media_barber"
        ),
        Index("ix_barber_media_barber_id", "barber_id"),
    )

    id = mapped_column(Integer, primary_key=True)
    barber_id = mapped_column(Integer, nullable=False)
    media_type = mapped_column(Enum(*MEDIA_TYPES, name="barber_media_type"), nullable=False)
    media_url = mapped_column(String(1024), nullable=False)
    title = mapped_column(String(255))
    description = mapped_column(Text)
    is_active = mapped_column(Boolean, nullable=False, default=True)
    created_at = mapped_column(DateTime, nullable=False, default=datetime.now)

    barber: Mapped["Barber"] = relationship("Barber", back_populates="media")

    def to_dict(self):
        return {
            "id": self.id,
            "barber_id": self.barber_id,
            "media_type": self.media_type,
            "media_url": self.media_url,
            "title": self.title,
            "description": self.description,
            "is_active": self.is_active,
            "created_at": _iso(self.created_at),
        }
