"""Names shared by every service that talks to the broker."""

# Services
BOOK_SERVICE = "book-service"
USER_SERVICE = "user-service"
NOTIFICATION_SERVICE = "notification-service"

# Aggregates
BOOK_AGGREGATE = "Book"
NOTIFICATION_AGGREGATE = "Notification"

# Exchanges
BOOK_EXCHANGE = "book.exchange"
USER_EXCHANGE = "user.exchange"
NOTIFICATION_EXCHANGE = "notification.exchange"
DLQ_EXCHANGE = "dlq.exchange"

# Routing keys
BOOK_CREATED_ROUTING_KEY = "book.created"
BOOK_UPDATED_ROUTING_KEY = "book.updated"
BOOK_DELETED_ROUTING_KEY = "book.deleted"
NOTIFICATION_SEND_ROUTING_KEY = "notification.send"

# Primary queues
BOOK_CREATED_QUEUE = "book.created.queue"
BOOK_UPDATED_QUEUE = "book.updated.queue"
BOOK_DELETED_QUEUE = "book.deleted.queue"
NOTIFICATION_SEND_QUEUE = "notification.send.queue"

# Dead-letter queues (also their routing keys on the DLQ exchange)
BOOK_CREATED_DLQ = "book.created.dlq"
BOOK_UPDATED_DLQ = "book.updated.dlq"
BOOK_DELETED_DLQ = "book.deleted.dlq"
NOTIFICATION_SEND_DLQ = "notification.send.dlq"

# Message headers
CORRELATION_ID_HEADER = "X-Correlation-ID"
EVENT_TYPE_HEADER = "X-Event-Type"
SOURCE_SERVICE_HEADER = "X-Source-Service"
TIMESTAMP_HEADER = "X-Timestamp"

# Queue arguments
DEAD_LETTER_EXCHANGE_ARG = "x-dead-letter-exchange"
DEAD_LETTER_ROUTING_KEY_ARG = "x-dead-letter-routing-key"
MESSAGE_TTL_ARG = "x-message-ttl"
QUEUE_TYPE_ARG = "x-queue-type"
QUORUM_QUEUE_TYPE = "quorum"

# Set by quorum queues on redelivery: the number of earlier delivery attempts
DELIVERY_COUNT_HEADER = "x-delivery-count"

MESSAGE_TTL_MS = 24 * 60 * 60 * 1000
MAX_RETRY_COUNT = 3
RETRY_DELAY_SECONDS = 1.0
