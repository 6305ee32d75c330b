"""
Configuration for insurance card OCR: field label templates, acceptance
thresholds and deployment settings
"""
import os

from dotenv import load_dotenv

load_dotenv()


# Field label templates.
# "detect_keywords" are lower-case substrings looked up in a cleaned line,
# "labels" are regex spellings tried in order (most specific first),
# "fallback_keywords" feed the whole-text pass for number fields.
CARD_FIELDS = {
    "subscriber_name": {
        "name": "Souscripteur",
        "detect_keywords": ["souscripteur", "subscriber"],
        "labels": [r"souscripteur", r"subscriber"],
    },
    "policy_number": {
        "name": "N° Police",
        "detect_keywords": ["police", "policy"],
        "labels": [
            r"n°\s*police",
            r"police",
            r"policy",
            r"n°\s*de\s*police",
            r"numero\s*police",
        ],
        "fallback_keywords": [r"police", r"policy"],
    },
    "member_number": {
        "name": "N° Assuré",
        "detect_keywords": ["assuré", "assure", "member"],
        "labels": [
            r"n°\s*assuré",
            r"numero\s*assuré",
            r"n°\s*assure",
            r"numero\s*assure",
            r"member\s*number",
            r"member\s*id",
        ],
        "fallback_keywords": [r"assuré", r"assure", r"member"],
    },
    "insured_name": {
        "name": "Assuré",
        "detect_keywords": ["nom", "assuré", "name"],
        "labels": [
            r"nom\s*assuré",
            r"nom\s*de\s*l'assuré",
            r"assuré",
            r"assure",
            r"nom",
            r"name",
            r"member\s*name",
        ],
    },
    "beneficiary_name": {
        "name": "Bénéficiaire",
        "detect_keywords": ["bénéficiaire", "beneficiaire", "beneficiary"],
        "labels": [r"bénéficiaire", r"beneficiaire", r"beneficiary"],
    },
    "age_years": {
        "name": "Âge",
        "detect_keywords": ["âge", "age"],
        "labels": [r"âge", r"age"],
    },
    "sex": {
        "name": "Sexe",
        "detect_keywords": ["sexe", "gender", "sex"],
        "labels": [r"sexe", r"gender", r"sex"],
    },
}

NAME_FIELDS = ("subscriber_name", "insured_name", "beneficiary_name")
NUMBER_FIELDS = ("policy_number", "member_number")

# Acceptance thresholds (tuned on sample cards, adjust against real data)
MIN_NAME_LENGTH = 2  # a name must be strictly longer than this
INSURED_NAME_EXCLUDED = ("police",)
MIN_FALLBACK_NUMBER_LENGTH = 4

# Sex classification
MALE_TOKENS = {"M", "H", "MALE", "HOMME"}
FEMALE_TOKENS = {"F", "FEMALE", "FEMME"}
MALE_PREFIXES = ("MASC",)
FEMALE_PREFIXES = ("FEM", "FÉM")
MALE_LETTERS = ("M", "H")
FEMALE_LETTERS = ("F",)


# Deployment settings
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "./uploads")
OCR_LANGUAGES = [
    lang.strip() for lang in os.getenv("OCR_LANGUAGES", "fr,en").split(",") if lang.strip()
]
OCR_GPU = os.getenv("OCR_GPU", "false").lower() in ("1", "true", "yes")
MAX_UPLOAD_SIZE = int(os.getenv("MAX_UPLOAD_SIZE", str(10 * 1024 * 1024)))  # 10MB
ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "pdf"}
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [
    origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()
]
