"""Contact form helpers"""
from biocms.models.contact import ContactPriority

HIGH_PRIORITY_KEYWORDS = ("urgent", "important", "asap", "emergency")
LOW_PRIORITY_KEYWORDS = ("feedback", "suggestion", "question")


def classify_priority(subject: str) -> ContactPriority:
    """Priority from subject keywords; high wins over low"""
    lowered = (subject or "").lower()
    if any(keyword in lowered for keyword in HIGH_PRIORITY_KEYWORDS):
        return ContactPriority.HIGH
    if any(keyword in lowered for keyword in LOW_PRIORITY_KEYWORDS):
        return ContactPriority.LOW
    return ContactPriority.MEDIUM
