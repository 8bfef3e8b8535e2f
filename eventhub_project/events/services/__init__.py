"""
Event domain services.

Every state change on events, registrations and certificates goes
through these functions; views, admin actions and the notification
batch never mutate those models directly.
"""
