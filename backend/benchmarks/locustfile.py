from locust import HttpUser, task, between

class AgencyUser(HttpUser):
    wait_time = between(1, 3)

    def on_start(self):
        payload = {"email": "load@agency.com", "password": "password", "name": "Load"}
        r = self.client.post("/api/auth/register", json=payload)
        if r.status_code != 200:
            r = self.client.post("/api/auth/login", json={"email": payload["email"], "password": payload["password"]})
        token = r.json().get("access_token")
        self.headers = {"Authorization": f"Bearer {token}"}

    @task(3)
    def list_briefs(self):
        self.client.get("/api/briefs/", headers=self.headers)

    @task(2)
    def unread_notifications(self):
        self.client.get("/api/notifications/unread-count", headers=self.headers)

    @task(1)
    def create_brief(self):
        self.client.post("/api/briefs/", json={"title": "bench brief"}, headers=self.headers)
