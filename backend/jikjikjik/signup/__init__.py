from jikjikjik.signup.experience import ExperienceEntry, ExperienceRegistry, ExperienceYears, SkillKey
from jikjikjik.signup.steps import STEPS, FormStepController
from jikjikjik.signup.store import SignupSessionStore
from jikjikjik.signup.submitter import SignupPayload, SignupSubmitter, TechCode
from jikjikjik.signup.verification import PhoneVerificationFlow, VerificationState
from jikjikjik.signup.wizard import Outcome, SignupWizard

__all__ = [
    "ExperienceEntry",
    "ExperienceRegistry",
    "ExperienceYears",
    "FormStepController",
    "Outcome",
    "PhoneVerificationFlow",
    "STEPS",
    "SignupPayload",
    "SignupSessionStore",
    "SignupSubmitter",
    "SignupWizard",
    "SkillKey",
    "TechCode",
    "VerificationState",
]
