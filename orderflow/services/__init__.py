"""
Services Module

Business logic behind the API routes. Notification providers follow the
hybrid pattern: a Mock implementation for development and a Real one
(Twilio / SendGrid) for staging and production.

Services:
    - orders: order mutations and queries
    - foods: menu mutations
    - notifications: SMS / email delivery of order updates
"""
