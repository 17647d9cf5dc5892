import re

# Name and personal identifiers
# Validates a username with alphanumeric characters, underscore, dash, and dot
# Example: "john.doe_2023"
USERNAME_VALIDATOR = re.compile(r"^[a-zA-Z0-9_\-.]{4,60}$")

# Validates a name with letters, spaces, apostrophes and dashes
# Example: "Mary-Jane O'Neil"
NAME_WITH_SPACES = re.compile(r"^[A-Za-z][A-Za-z\s'\-]{0,49}$")

# Security
# Validates a strong password with at least one lowercase letter, one uppercase letter,
# one digit, one special character, and a minimum length of 8 characters
# Example: "Passw0rd!"
STRONG_PASSWORD_VALIDATOR = re.compile(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$"
)

# Finds encoded JWTs (header segment always starts with "eyJ") inside free text
# Example: "Bearer eyJhbGciOi...abc.def"
JWT_IN_TEXT = re.compile(r"eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+")
