"""
User-facing messages returned in response envelopes.

Kept in one place so the wording stays consistent between services
and can later be swapped for a translated catalog.
"""

DEFAULT_ERROR = "Something went wrong, please try again later"
INVALID_PAGINATION = "Page size must be a positive integer"


class UserMessages:
    FIRSTNAME_REQUIRED = "First name is required"
    LASTNAME_REQUIRED = "Last name is required"
    EMAIL_REQUIRED = "Email is required"
    PASSWORD_REQUIRED = "Password is required"
    INVALID_EMAIL = "Email address is not valid"
    ALREADY_EXISTS = "A user with this email already exists"
    NOT_FOUND = "User not found"
    INVALID_CREDENTIALS = "Invalid email or password"
    AUTHENTICATED = "Successfully authenticated"
    CREATED = "User created"
    INFORMATIONS = "User informations"
    COLLECTION = "Users collection"
    UPDATED = "User updated"
    PROFILE_UPDATED = "Profile updated"
    DELETED = "User deleted"


class ProductMessages:
    ALREADY_REVIEWED = "Product already reviewed"
    INVALID_RATING = "Rating must be an integer between 1 and 5"
    REVIEW_ADDED = "Review added"
    COLLECTION = "Products collection"
    TOP = "Top rated products"
    INFORMATIONS = "Product informations"
    CREATED = "Product created"
    UPDATED = "Product updated"
    DELETED = "Product deleted"
