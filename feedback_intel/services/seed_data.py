"""
Demo feedback catalog used by POST /api/seed.

Volumes are uneven (one title five times, a few users
submitting repeatedly) so every dashboard view has something to show.
"""

from typing import List

from feedback_intel.models.views import FeedbackIn

_DEMO_ROWS = [
    ("Dashboard loading takes 5+ seconds", "The dashboard takes way too long to load. Sometimes it times out completely.", "Discord", "dev@company.com"),
    ("Dashboard loading takes 5+ seconds", "Dashboard is extremely slow to load", "Support Ticket", "pm@startup.io"),
    ("Dashboard loading takes 5+ seconds", "Performance issue with dashboard", "GitHub", "eng@tech.com"),
    ("Dashboard loading takes 5+ seconds", "Dashboard loading is slow", "Twitter", "user1@email.com"),
    ("Dashboard loading takes 5+ seconds", "Dashboard timeout errors", "Discord", "dev@company.com"),
    ("Workers AI timeout errors on large files", "Workers AI times out when processing files larger than 5MB", "GitHub", "eng@tech.com"),
    ("Workers AI timeout errors on large files", "Large file processing fails", "Support Ticket", "pm@startup.io"),
    ("Workers AI timeout errors on large files", "Timeout issue with AI service", "Discord", "dev@company.com"),
    ("D1 migrations fail silently", "D1 migrations fail without error messages", "GitHub", "eng@tech.com"),
    ("D1 migrations fail silently", "Migration errors are not reported properly", "Support Ticket", "pm@startup.io"),
    ("KV cache invalidation not working", "Cache does not invalidate when keys are updated", "Discord", "dev@company.com"),
    ("KV cache invalidation not working", "Cache invalidation broken", "GitHub", "eng@tech.com"),
    ("Cannot deploy to Workers", "Deployment fails with cryptic error message", "Discord", "dev@company.com"),
    ("Wrangler CLI crashes on Windows", "CLI crashes when running deploy command on Windows 11", "GitHub", "eng@tech.com"),
    ("Documentation unclear on D1 setup", "Cannot find clear instructions for D1 database setup", "Support Ticket", "pm@startup.io"),
    ("R2 CORS configuration unclear", "Cannot figure out CORS setup for R2 buckets", "Support Ticket", "pm@startup.io"),
    ("API performance degraded", "API is slower than usual. Response times have increased significantly", "Discord", "dev@company.com"),
    ("Great new AI feature!", "Love the new AI models. They work really well!", "Twitter", "fan@email.com"),
    ("Love the new features!", "Great updates this month. Keep up the good work!", "Twitter", "happy@user.com"),
    ("KV storage quota exceeded", "Need more storage for KV namespace", "Support Ticket", "dev@company.com"),
    ("Database migration failed", "D1 migration script not working as expected", "Support Ticket", "pm@startup.io"),
    ("Workers AI rate limiting too strict", "Hit rate limits with Workers AI too quickly", "GitHub", "eng@tech.com"),
    ("Dashboard UI confusing", "Hard to find deployment settings in the dashboard", "Twitter", "user1@email.com"),
    ("Workers AI is slow", "AI inference takes too long to complete", "GitHub", "eng@tech.com"),
    ("Excellent documentation update", "The latest docs are much clearer. Thank you!", "Twitter", "happy@user.com"),
]


def demo_feedback() -> List[FeedbackIn]:
    return [
        FeedbackIn(title=title, description=description, source=source, user_email=email)
        for title, description, source, email in _DEMO_ROWS
    ]
