from trainingdesk.app.db.base_class import Base

# Import models to register metadata for Base.metadata.create_all in tests
from trainingdesk.app.models.machine import Machine  # noqa: F401
from trainingdesk.app.models.member import Member  # noqa: F401
from trainingdesk.app.models.subscription import MemberSubscription  # noqa: F401
from trainingdesk.app.models.subscription_payment import SubscriptionPayment  # noqa: F401
from trainingdesk.app.models.training_session import TrainingSession  # noqa: F401
from trainingdesk.app.models.studio_settings import StudioSettings  # noqa: F401
