from textual.message import Message


class QuitRequestedMessage(Message):
    """
    broadcasted when the app is about to quit
    """

    bubble = True


class UserLogoutMessage(Message):
    """
    broadcasted when the user logs out
    """

    bubble = True


class UserLoginMessage(Message):
    """
    Fired when a user logged in, so the app can route to the role's home mode
    """

    bubble = True


class CartChangedMessage(Message):
    """
    Fired whenever a cart line is added, changed or removed.
    Post at App level when fired from outside the cart screen.
    """

    bubble = True


class OrderPlacedMessage(Message):
    """
    Fired when checkout created an order. Listened to by the orders screen.
    """

    bubble = True

    def __init__(self, order_id: str) -> None:
        super().__init__()
        self.order_id = order_id


class InquirySubmittedMessage(Message):
    """
    Fired when a quote inquiry was created. Listened to by the projects screen.
    """

    bubble = True

    def __init__(self, inquiry_id: str) -> None:
        super().__init__()
        self.inquiry_id = inquiry_id


class NavigateMessage(Message):
    """
    Request to switch mode; the app applies the role gate before switching.
    """

    bubble = True

    def __init__(self, mode: str) -> None:
        super().__init__()
        self.mode = mode
