from pores import create_app

app = create_app()
