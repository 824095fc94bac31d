"""Direct messaging between job seekers and employers.

This package provides:
- models.py: Message, Conversation, UserIdentity, ConnectionSession
- store.py: MessageStore over the Mongo ``Message`` collection
- presence.py: in-memory PresenceRegistry
- commands.py: inbound live-transport command types
- coordinator.py: DeliveryCoordinator (send, typing, read receipts)
- conversations.py: ConversationAggregator (conversation list, history)
- service.py: MessagingService wiring the above together per app

Import from the submodules directly.
"""
