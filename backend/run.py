import os

from app import create_app, socketio

app = create_app()

if __name__ == '__main__':
    # SocketIO server so observers get live state pushes in dev
    port = int(os.environ.get('PORT', '3000'))
    socketio.run(app, host='0.0.0.0', port=port, debug=os.environ.get('FLASK_DEBUG') == '1')
