from marketplace_messaging.main import create_app

app = create_app()
