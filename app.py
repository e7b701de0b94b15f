import os

from e_estudiantes import create_app

app = create_app()


if __name__ == '__main__':
    port = int(os.getenv('PORT', '5000') or 5000)
    app.run(debug=str(os.getenv('FLASK_DEBUG', '0')).strip().lower() in {'1', 'true', 'yes', 'on'}, port=port)
