from dinebot.models.restaurant import Restaurant
from dinebot.models.customer import WhatsAppCustomer
from dinebot.models.conversation import Conversation
from dinebot.models.processed_message import ProcessedMessage
from dinebot.models.whatsapp_message import WhatsAppMessage
from dinebot.models.menu_category import MenuCategory
from dinebot.models.menu_item import MenuItem
from dinebot.models.menu_item_variant import MenuItemVariant
from dinebot.models.menu_item_addon import MenuItemAddon
from dinebot.models.order import Order
from dinebot.models.order_item import OrderItem
from dinebot.models.conversation_order import ConversationOrder
