"""Order confirmation template — sent when an order is placed."""


class OrderConfirmationTemplate:
    @staticmethod
    def render(context: dict) -> dict:
        order_number = context.get("order_number", "N/A")
        total = context.get("total", 0)
        lines = "\n".join(
            f"  - {item['name']} x {item['quantity']} @ {item['price']:g}" for item in context.get("items", [])
        )
        payment_method = context.get("payment_method", "cod").upper()
        return {
            "subject": f"Order Confirmation - {order_number}",
            "body": (
                f"Thank you for your order! Your order {order_number} has been placed.\n\n"
                f"{lines}\n\n"
                f"Order Total: {total:g}\n"
                f"Payment Method: {payment_method}\n\n"
                "We'll notify you once your order ships."
            ),
        }
