"""Shared names: collections, roles and document statuses."""

from enum import Enum


class Collections:
    """MongoDB collection names."""

    ADMINS = "admins"
    BOOKMARKS = "bookmarks"
    CHEFS = "chefs"
    CHEF_REVIEWS = "chefreviews"
    CONSULTS = "consults"
    LIKES = "likes"
    NEWSLETTER_SUBSCRIBERS = "newslettersubscribers"
    PAYMENT_RECEIPTS = "paymentreceipts"
    RATINGS = "ratings"
    RECIPES = "recipes"
    ROLE_PROMOTION_APPLICANTS = "rolepromotionapplicants"
    STUDENTS = "students"


class Role(str, Enum):
    """Caller roles issued by the identity provider."""

    STUDENT = "student"
    CHEF = "chef"
    ADMIN = "admin"

    @property
    def grants_full_visibility(self) -> bool:
        """Whether unpublished recipes are visible to this role."""
        return self in (Role.CHEF, Role.ADMIN)


class Package(str, Enum):
    BASIC = "basic"
    PRO = "pro"


class RecipeStatus(str, Enum):
    PENDING = "pending"
    PUBLISHED = "published"
    REJECTED = "rejected"


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ConsultStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class ReceiptTitle(str, Enum):
    PRO_PACKAGE = "student/pro-pkg"
    CHEF_SUPPORT = "student/chef-support"


PAYMENT_SUCCEEDED = "succeeded"
