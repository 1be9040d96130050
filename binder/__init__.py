"Binder classroom core: attachment storage, submissions and grading."
