"""Constants for the classroom membership core."""

# Collections
CLASSROOMS_COLLECTION = "classrooms"
MEMBERS_COLLECTION = "members"
USERS_COLLECTION = "users"

# Classroom document fields
FIELD_NAME = "name"
FIELD_CREATED_AT = "createdAt"
FIELD_CREATED_BY_ID = "createdById"
FIELD_CREATED_BY_NAME = "createdByName"
FIELD_PASSWORD = "password"

# Membership document fields
FIELD_USER_ID = "userId"
FIELD_EMAIL = "email"
FIELD_ROLE = "role"
FIELD_CLASSROOM_CREATED_AT = "classroomCreatedAt"

# Name bounds
DEFAULT_CLASSROOM_NAME_MIN_LENGTH = 8
DEFAULT_CLASSROOM_NAME_MAX_LENGTH = 150
