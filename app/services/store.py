import secrets
from datetime import datetime, timedelta
from sqlalchemy.orm import Session

from app.models.subscription import Subscription, Frequency
from app.models.token import Token, TokenType

CONFIRMATION_TOKEN_TTL = timedelta(hours=24)


def generate_token_value() -> str:
    return secrets.token_hex(32)


class SubscriptionStore:
    """
    Key-based reads and writes over `subscriptions` and `tokens`.

    Methods flush but never commit; the calling flow owns the transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    # === Subscriptions ===
    def find_subscription_by_email(self, email: str) -> Subscription | None:
        return self.db.query(Subscription).filter(Subscription.email == email).first()

    def get_subscription(self, subscription_id: int) -> Subscription | None:
        return self.db.query(Subscription).filter(Subscription.id == subscription_id).first()

    def create_subscription(self, email: str, city: str, frequency: Frequency) -> Subscription:
        subscription = Subscription(email=email, city=city, frequency=frequency, confirmed=False)
        self.db.add(subscription)
        self.db.flush()
        return subscription

    def mark_confirmed(self, subscription: Subscription) -> Subscription:
        subscription.confirmed = True
        subscription.updated_at = datetime.utcnow()
        self.db.flush()
        return subscription

    def delete_subscription(self, subscription_id: int) -> int:
        # Bulk delete; the database cascades to `tokens`
        return self.db.query(Subscription).filter(Subscription.id == subscription_id).delete(
            synchronize_session=False
        )

    # === Tokens ===
    def find_token(self, value: str) -> Token | None:
        return self.db.query(Token).filter(Token.token == value).first()

    def create_token(self, subscription_id: int, token_type: TokenType,
                     expires_at: datetime | None = None) -> Token:
        token = Token(
            subscription_id=subscription_id,
            token=generate_token_value(),
            type=token_type,
            expires_at=expires_at,
        )
        self.db.add(token)
        self.db.flush()
        return token

    def create_confirmation_token(self, subscription_id: int) -> Token:
        return self.create_token(
            subscription_id,
            TokenType.confirmation,
            expires_at=datetime.utcnow() + CONFIRMATION_TOKEN_TTL,
        )

    def create_unsubscribe_token(self, subscription_id: int) -> Token:
        return self.create_token(subscription_id, TokenType.unsubscribe)

    def delete_token(self, token_id: int) -> int:
        return self.db.query(Token).filter(Token.id == token_id).delete(synchronize_session=False)

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
