# admin.py
from flask import Blueprint, request, render_template_string

DASH_HTML = """
<html>
  <head><title>Certificates Admin</title></head>
  <body>
    <h1>Certificates Admin</h1>
    <p>Simple dashboard. Protect with ADMIN_TOKEN in env.</p>
    <h2>Recent Deliveries</h2>
    <table border="1" cellpadding="6">
      <tr><th>Sent</th><th>Sender</th><th>Certificate</th><th>Recipient</th><th>Number</th><th>Paid</th><th>Payment Ref</th></tr>
      {% for d in deliveries %}
      <tr>
        <td>{{d.created_at}}</td>
        <td>{{d.sender}}</td>
        <td>{{d.certificate_id}}</td>
        <td>{{d.recipient_name}}</td>
        <td>{{d.recipient_number}}</td>
        <td>{{d.paid}}</td>
        <td>{{d.payment_reference or ""}}</td>
      </tr>
      {% endfor %}
    </table>
  </body>
</html>
"""


def create_admin_blueprint(audit, admin_token):
    admin = Blueprint("admin", __name__)

    @admin.route("/admin")
    def admin_dashboard():
        token = request.args.get("token", "")
        if not admin_token or token != admin_token:
            return "Forbidden", 403
        deliveries = audit.recent(limit=100)
        return render_template_string(DASH_HTML, deliveries=deliveries)

    return admin
