"""
Keyword-matching FAQ bot backed by the help-center questions.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

FALLBACK_ANSWER = (
    "I don't have that in my FAQs. You can report this to the team so we can help."
)

STOPWORDS = frozenset(
    {
        "a", "an", "the", "and", "or", "to", "of", "for", "in", "on", "at",
        "is", "are", "am", "can", "i", "you", "we", "they", "with", "do",
        "does", "my", "your", "our", "what", "how", "where", "if", "there",
        "any", "be", "from", "it", "this", "that", "as", "may",
    }
)

# (triggers, expansion)
SYNONYMS = [
    ({"apply", "application"}, ["apply", "application", "register"]),
    ({"hours", "hour"}, ["hours", "time", "open", "close", "schedule"]),
    (
        {"location", "pick", "return"},
        ["location", "where", "address", "map", "pickup", "return"],
    ),
    (
        {"report", "issue", "damaged"},
        ["report", "issue", "problem", "broken", "maintenance", "technical"],
    ),
    ({"safety"}, ["safety", "helmet", "rules"]),
    ({"support", "contact"}, ["support", "contact", "email", "phone", "help"]),
]


def derive_keywords(question: str) -> list[str]:
    words = re.sub(r"[^a-z0-9\s]", " ", question.lower()).split()
    keywords: list[str] = []
    for word in words:
        if len(word) > 2 and word not in STOPWORDS and word not in keywords:
            keywords.append(word)
    present = set(keywords)
    for triggers, expansion in SYNONYMS:
        if present & triggers:
            for word in expansion:
                if word not in present:
                    keywords.append(word)
                    present.add(word)
    return keywords


@dataclass
class FaqEntry:
    id: str
    question: str
    answer: str
    keywords: list[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.keywords:
            self.keywords = derive_keywords(self.question)

    def score(self, text: str) -> int:
        lowered = text.lower()
        hits = sum(1 for k in self.keywords if k in lowered)
        if self.question.lower() in lowered:
            hits += 2
        return hits

    def as_dict(self) -> dict:
        return {"id": self.id, "question": self.question, "answer": self.answer}


FAQ_ENTRIES = [
    FaqEntry(
        id="1",
        question="How do I register for the bike rental system?",
        answer="To register, click on the \"Register\" button on the homepage and fill out the registration form with your information. You'll need to provide your email, and other required details. Once submitted, your application will be reviewed by the admin team.",
    ),
    FaqEntry(
        id="2",
        question="How long does the application approval process take?",
        answer="Application approval typically takes 1-3 business days. You'll receive an notification on the app once your application has been reviewed. You can also check your application status in your dashboard.",
    ),
    FaqEntry(
        id="3",
        question="What documents do I need to register?",
        answer="You need a Certificate of Indigency, General Weighted Average, Extra Curricular Activities, and Income Tax Return.",
    ),
    FaqEntry(
        id="4",
        question="Can I register if I'm not a current student?",
        answer="The bike rental system is exclusively for current students, teacher and staff of the university.",
    ),
    FaqEntry(
        id="5",
        question="How do I rent a bike?",
        answer="Once your application is approved, your bike will be assigned to you and you can pick it up from SDO CECS building.",
    ),
    FaqEntry(
        id="6",
        question="Can I rent multiple bikes at once?",
        answer="No, each student can only rent one bike at a time. This policy ensures that bikes are available for as many students as possible.",
    ),
    FaqEntry(
        id="7",
        question="How do I cancel my rent?",
        answer="You can cancel a rent through returning the bike to the same location where you picked it up.",
    ),
    FaqEntry(
        id="8",
        question="Where can I pick up and return bikes?",
        answer="Bikes can be picked up and returned at SDO CECS building. Always return bikes to the same location where you picked them up.",
    ),
    FaqEntry(
        id="9",
        question="What are the operating hours for bike pickup and return?",
        answer="Bikes can be picked up and returned during campus hours, typically from 7:00 AM to 4:00 PM.",
    ),
    FaqEntry(
        id="10",
        question="What should I do if a bike is damaged or not working?",
        answer="If you encounter a damaged or non-functional bike, please report it immediately through the \"Report Issue\" feature in your \"Help Center\" or contact the staff. Do not attempt to use a damaged bike as it may be unsafe.",
    ),
    FaqEntry(
        id="11",
        question="What if I lose or damage a bike during my rental?",
        answer="Report any loss or damage immediately to the staff. You may be responsible for repair costs or replacement fees. Contact support as soon as possible to discuss the situation.",
    ),
    FaqEntry(
        id="12",
        question="How do I report a technical issue with the system?",
        answer="Use the \"Report Issue\" feature in your \"Help Center\" or contact support directly. Provide as much detail as possible about the problem you're experiencing.",
    ),
    FaqEntry(
        id="13",
        question="Can I extend my rental period?",
        answer="No, you cannot extend your rental period because the bike is assigned to you for a specific period you may apply again for a new application.",
    ),
    FaqEntry(
        id="14",
        question="What happens if I return a bike late?",
        answer="Late returns may result in penalties or temporary suspension of rental privileges. The system tracks rental periods automatically. Please try to return bikes on time to maintain good standing.",
    ),
    FaqEntry(
        id="15",
        question="What safety equipment is provided with bikes?",
        answer="Each bike comes with a helmet and basic safety equipment. Helmets are mandatory for all riders. Additional safety gear may be available like tumbler and air pump at pickup locations.",
    ),
    FaqEntry(
        id="16",
        question="Are there any safety rules I need to follow?",
        answer="Yes, you must wear a helmet at all times, follow traffic rules, and ride responsibly. No riding under the influence of alcohol or drugs. Always check the bike before riding.",
    ),
    FaqEntry(
        id="17",
        question="What should I do in case of an accident?",
        answer="In case of an accident, prioritize your safety first. Contact emergency services if needed, then report the incident to the bike rental staff immediately. Do not leave the scene without proper documentation.",
    ),
    FaqEntry(
        id="18",
        question="Is there a mobile app available?",
        answer="Currently, the bike rental system is accessible through the web interface, which is mobile-responsive. A dedicated mobile app may be available in the future. The web version works well on smartphones and tablets.",
    ),
    FaqEntry(
        id="19",
        question="What browsers are supported?",
        answer="The system works best with modern browsers including Chrome, Firefox, Safari, and Edge. Make sure your browser is updated to the latest version for the best experience.",
    ),
    FaqEntry(
        id="20",
        question="What if I forget my password?",
        answer="Use the \"Forgot Password\" link on the login page to reset your password. You'll receive an email with instructions to create a new password.",
    ),
    FaqEntry(
        id="21",
        question="How do I update my profile information?",
        answer="You can update your profile information through the \"Profile Settings\" section in your dashboard.",
    ),
    FaqEntry(
        id="22",
        question="Can I change my email address?",
        answer="Yes, you can update your email address in your profile settings.",
    ),
    FaqEntry(
        id="23",
        question="How do I deactivate my account?",
        answer="Contact support to request account deactivation. Make sure to return any active rentals and clear any outstanding issues before deactivation.",
    ),
    FaqEntry(
        id="24",
        question="How do I contact support?",
        answer="You can contact support through the phone number (09694567890) or email (sdobsulipa@g.batstate-u.edu.ph) provided in the contact section. Response times are typically within 24 hours during business days.",
    ),
    FaqEntry(
        id="25",
        question="What are the support hours?",
        answer="Support is available during business hours, Monday through Friday, 8:00 AM to 5:00 PM. For urgent issues outside these hours, use the emergency contact number.",
    ),
]


def find_entry(text: str, entries: list[FaqEntry] = FAQ_ENTRIES) -> Optional[FaqEntry]:
    """Highest-scoring entry; earlier entries win ties. None when nothing scores."""
    best: Optional[FaqEntry] = None
    best_score = 0
    for entry in entries:
        score = entry.score(text)
        if score > best_score:
            best, best_score = entry, score
    return best


def answer(text: str) -> dict:
    entry = find_entry(text)
    if entry is None:
        return {"answer": FALLBACK_ANSWER, "matched": None, "escalate": True}
    return {"answer": entry.answer, "matched": entry.id, "escalate": False}
