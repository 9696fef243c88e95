from quoteflow.data.notifications.notification import Notification

__all__ = ['Notification']
