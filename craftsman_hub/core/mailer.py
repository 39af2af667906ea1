"""
Out-of-band delivery of password-reset links.

Real email delivery is handled outside this service; the default Mailer
writes the link to the application log.
"""

import logging

logger = logging.getLogger(__name__)


class Mailer:
    def send_password_reset(self, email: str, reset_url: str) -> None:
        logger.info("Password reset link for %s: %s", email, reset_url)
